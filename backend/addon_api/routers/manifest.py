"""Manifest and landing endpoints."""
import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from ..dependencies import get_catalog_index, get_settings
from ..schemas import ErrorResponse, Manifest, RootInfo
from ..services.catalog_index import CatalogError, CatalogIndex
from ..services.manifest import ManifestConfigError, build_manifest
from ..settings import AddonSettings

logger = logging.getLogger(__name__)

router = APIRouter(tags=["manifest"])


@router.get(
    "/manifest.json",
    response_model=Manifest,
    response_model_exclude_none=True,
    responses={500: {"model": ErrorResponse}},
)
def get_manifest(
    index: CatalogIndex = Depends(get_catalog_index),
    settings: AddonSettings = Depends(get_settings),
):
    """Return the manifest for the catalog snapshot currently being served."""

    try:
        return build_manifest(index, settings)
    except (ManifestConfigError, CatalogError) as exc:
        logger.error("Error getting manifest: %s", exc)
        return JSONResponse(
            status_code=500,
            content={"error": "Failed to load manifest", "message": str(exc)},
        )


@router.get("/", response_model=RootInfo)
def get_root(request: Request, settings: AddonSettings = Depends(get_settings)) -> RootInfo:
    """Point clients at the manifest and health endpoints."""

    forwarded_proto = request.headers.get("x-forwarded-proto")
    host = request.headers.get("host") or request.url.netloc or "localhost"
    scheme = forwarded_proto.split(",")[0].strip() if forwarded_proto else request.url.scheme
    origin = f"{scheme}://{host}"
    return RootInfo(
        message=settings.addon_name,
        manifest=f"{origin}/manifest.json",
        health=f"{origin}/healthz",
    )
