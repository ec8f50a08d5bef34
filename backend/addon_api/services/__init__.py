"""Catalog indexing, querying and process helpers for the addon."""

from .catalog_handler import handle_catalog_request
from .catalog_index import (
    CatalogError,
    CatalogIndex,
    CatalogLoadError,
    CatalogNotInitializedError,
    CatalogSnapshot,
)
from .catalog_watcher import CatalogWatcher
from .manifest import ManifestConfigError, build_manifest, validate_manifest_config
from .query import (
    QueryOptions,
    format_catalog_name,
    project_manifest_catalogs,
    query_items,
    to_meta,
)
from .tunnel_service import (
    TunnelAlreadyRunningError,
    TunnelNotRunningError,
    TunnelProcessStatus,
    TunnelService,
    TunnelServiceError,
)

__all__ = [
    "CatalogError",
    "CatalogIndex",
    "CatalogLoadError",
    "CatalogNotInitializedError",
    "CatalogSnapshot",
    "CatalogWatcher",
    "ManifestConfigError",
    "QueryOptions",
    "TunnelAlreadyRunningError",
    "TunnelNotRunningError",
    "TunnelProcessStatus",
    "TunnelService",
    "TunnelServiceError",
    "build_manifest",
    "format_catalog_name",
    "handle_catalog_request",
    "project_manifest_catalogs",
    "query_items",
    "to_meta",
    "validate_manifest_config",
]
