"""Manifest assembly for the addon discovery endpoint."""
from __future__ import annotations

import logging
from typing import Any

from ..settings import AddonSettings
from .catalog_index import CatalogIndex
from .query import project_manifest_catalogs

logger = logging.getLogger(__name__)

_REQUIRED_FIELDS = (
    ("addon_id", "id"),
    ("addon_version", "version"),
    ("addon_name", "name"),
    ("addon_description", "description"),
)


class ManifestConfigError(ValueError):
    """Raised when a required manifest identity field is missing."""


def validate_manifest_config(settings: AddonSettings) -> None:
    """Fail fast when the identity fields needed by the manifest are absent."""

    for attribute, manifest_key in _REQUIRED_FIELDS:
        if not getattr(settings, attribute, None):
            raise ManifestConfigError(
                f"{attribute} is required in manifest configuration (manifest field '{manifest_key}')"
            )
    if not isinstance(getattr(settings, "id_prefixes", None), list):
        raise ManifestConfigError("id_prefixes array is required in manifest configuration")


def build_manifest(index: CatalogIndex, settings: AddonSettings) -> dict[str, Any]:
    """Return the manifest for the current catalog snapshot."""

    validate_manifest_config(settings)

    snapshot = index.snapshot()
    catalogs = project_manifest_catalogs(snapshot)
    types = snapshot.supported_types()

    manifest: dict[str, Any] = {
        "id": settings.addon_id,
        "version": settings.addon_version,
        "name": settings.addon_name,
        "description": settings.addon_description,
        "resources": ["catalog"],
        "types": types,
        "catalogs": catalogs,
        "idPrefixes": list(settings.id_prefixes),
    }
    if settings.addon_logo:
        manifest["logo"] = settings.addon_logo
    if settings.addon_background:
        manifest["background"] = settings.addon_background

    logger.debug(
        "Generated manifest with %d catalogs and types: %s", len(catalogs), ", ".join(types)
    )
    return manifest
