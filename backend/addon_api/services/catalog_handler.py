"""Request-level handling for catalog queries."""
from __future__ import annotations

import logging
from typing import Any, Mapping

from .catalog_index import CatalogIndex
from .query import QueryOptions, query_items

logger = logging.getLogger(__name__)


def empty_response() -> dict[str, list[dict[str, Any]]]:
    return {"metas": []}


def handle_catalog_request(
    index: CatalogIndex,
    catalog_type: str | None,
    catalog_id: str | None,
    extra: Mapping[str, Any] | None = None,
) -> dict[str, list[dict[str, Any]]]:
    """Answer a catalog request, collapsing every failure into an empty page.

    The client protocol has no error channel for catalogs, so this never
    raises.
    """

    logger.debug("Catalog request received: type=%s, id=%s, extra=%s", catalog_type, catalog_id, extra)

    if not catalog_type:
        logger.warning("Catalog request missing type parameter")
        return empty_response()
    if not catalog_id:
        logger.warning("Catalog request missing id parameter")
        return empty_response()

    try:
        snapshot = index.snapshot()
        if catalog_type not in snapshot.supported_types():
            logger.warning("Unsupported content type requested: %s", catalog_type)
            return empty_response()

        options = QueryOptions.from_extra(extra)
        metas = query_items(snapshot, catalog_type, catalog_id, options)
    except Exception:
        logger.exception("Error handling catalog request %s/%s", catalog_type, catalog_id)
        return empty_response()

    logger.info(
        "Returning %d items for catalog: %s/%s (skip: %d, limit: %s, genre: %s)",
        len(metas),
        catalog_type,
        catalog_id,
        options.skip,
        options.limit or "none",
        options.genre or "none",
    )
    return {"metas": metas}
