"""Catalog endpoints queried by the media-center client."""
from typing import Any
from urllib.parse import parse_qsl, quote

from fastapi import APIRouter, Depends, Request

from ..dependencies import get_catalog_index
from ..schemas import CatalogResponse
from ..services.catalog_handler import handle_catalog_request
from ..services.catalog_index import CatalogIndex

router = APIRouter(prefix="/catalog", tags=["catalog"])


def _raw_path_extra(request: Request) -> str | None:
    """Return the still percent-encoded ``{extra}`` segment of the request path."""

    raw_path = request.scope.get("raw_path")
    if not raw_path:
        return None
    segment = raw_path.split(b"?", 1)[0].rsplit(b"/", 1)[-1].decode("latin-1")
    if segment.endswith(".json"):
        segment = segment[: -len(".json")]
    return segment


def _collect_extra(request: Request, path_extra: str | None = None) -> dict[str, Any]:
    extra: dict[str, Any] = {}
    if path_extra:
        # The path parameter is already decoded; parse the raw segment so an
        # encoded "&" or "+" inside a value survives.
        encoded = _raw_path_extra(request)
        if encoded is None:
            encoded = quote(path_extra, safe="=&")
        extra.update(parse_qsl(encoded, keep_blank_values=True))
    extra.update(request.query_params.items())
    return extra


@router.get("/{catalog_type}/{catalog_id}.json", response_model=CatalogResponse)
def get_catalog(
    catalog_type: str,
    catalog_id: str,
    request: Request,
    index: CatalogIndex = Depends(get_catalog_index),
) -> dict[str, Any]:
    """Return a page of metas; query parameters carry ``skip``, ``limit`` and ``genre``."""

    return handle_catalog_request(index, catalog_type, catalog_id, _collect_extra(request))


@router.get("/{catalog_type}/{catalog_id}/{extra}.json", response_model=CatalogResponse)
def get_catalog_with_extra(
    catalog_type: str,
    catalog_id: str,
    extra: str,
    request: Request,
    index: CatalogIndex = Depends(get_catalog_index),
) -> dict[str, Any]:
    """Variant used by clients that encode extras in the path (``skip=20&genre=Drama``)."""

    return handle_catalog_request(
        index, catalog_type, catalog_id, _collect_extra(request, extra)
    )
