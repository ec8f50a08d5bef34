"""Projection, filtering and pagination over catalog index snapshots."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping

from .catalog_index import CatalogIndex, CatalogSnapshot

logger = logging.getLogger(__name__)

UNKNOWN_CATALOG_NAME = "Unknown Catalog"
UNKNOWN_ITEM_NAME = "Unknown"
SKIP_EXTRA = {"name": "skip", "isRequired": False}

# Copied onto the meta only when truthy on the source item.
_OPTIONAL_META_FIELDS = ("description", "releaseInfo", "runtime", "imdbRating")


def _parse_int(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip())
    except ValueError:
        return None


@dataclass(frozen=True, slots=True)
class QueryOptions:
    """Pagination and filtering options for a catalog query."""

    skip: int = 0
    limit: int | None = None
    genre: str | None = None

    @classmethod
    def from_extra(cls, extra: Mapping[str, Any] | None) -> "QueryOptions":
        """Normalize loosely typed request extras into query options.

        A negative or non-numeric ``skip`` becomes 0; a negative or
        non-numeric ``limit`` disables the limit.
        """

        extra = extra or {}
        raw_skip = extra.get("skip")
        skip = _parse_int(raw_skip)
        if skip is None or skip < 0:
            if raw_skip not in (None, ""):
                logger.warning("Invalid skip parameter: %r, using 0", raw_skip)
            skip = 0

        raw_limit = extra.get("limit")
        limit = _parse_int(raw_limit)
        if limit is not None and limit < 0:
            limit = None
        if limit is None and raw_limit not in (None, ""):
            logger.warning("Invalid limit parameter: %r, ignoring limit", raw_limit)

        genre = extra.get("genre")
        if not isinstance(genre, str) or not genre.strip():
            genre = None

        return cls(skip=skip, limit=limit, genre=genre)


def format_catalog_name(catalog_name: str | None) -> str:
    """Turn ``best_movies_of_2025`` into ``Best Movies Of 2025``."""

    if not catalog_name:
        return UNKNOWN_CATALOG_NAME
    return " ".join(word[:1].upper() + word[1:] for word in str(catalog_name).split("_"))


def _current(index: CatalogIndex | CatalogSnapshot) -> CatalogSnapshot:
    if isinstance(index, CatalogSnapshot):
        return index
    return index.snapshot()


def project_manifest_catalogs(index: CatalogIndex | CatalogSnapshot) -> list[dict[str, Any]]:
    """Return manifest catalog descriptors in document order."""

    return [
        {
            "type": catalog["catalog_type"],
            "id": catalog["catalog_name"],
            "name": format_catalog_name(catalog["catalog_name"]),
            "extra": [dict(SKIP_EXTRA)],
        }
        for catalog in _current(index).all_catalogs()
    ]


def to_meta(item: Mapping[str, Any], catalog_type: str) -> dict[str, Any]:
    """Transform a catalog item into the client-facing meta shape."""

    meta: dict[str, Any] = {
        "id": item.get("id") or "",
        "type": catalog_type,
        "name": item.get("name") or UNKNOWN_ITEM_NAME,
    }
    if item.get("poster"):
        meta["poster"] = item["poster"]
    if item.get("banner"):
        meta["background"] = item["banner"]
    for key in _OPTIONAL_META_FIELDS:
        if item.get(key):
            meta[key] = item[key]
    return meta


def matches_genre(item: Mapping[str, Any], genre: str) -> bool:
    """Case- and whitespace-insensitive membership test on ``item['genres']``."""

    genres = item.get("genres")
    if not isinstance(genres, list):
        return False
    wanted = genre.strip().casefold()
    return any(isinstance(value, str) and value.strip().casefold() == wanted for value in genres)


def query_items(
    index: CatalogIndex | CatalogSnapshot,
    catalog_type: str,
    catalog_id: str,
    options: QueryOptions | None = None,
) -> list[dict[str, Any]]:
    """Return one page of metas for the catalog keyed by type and id.

    Unknown catalogs and catalogs without items yield an empty list. Filtering
    and transformation happen before ``skip`` and ``limit`` are applied.
    """

    options = options or QueryOptions()
    catalog = _current(index).lookup(catalog_type, catalog_id)
    if catalog is None:
        logger.warning("Catalog not found: %s:%s", catalog_type, catalog_id)
        return []

    items = catalog.get("catalog_items")
    if not isinstance(items, list) or not items:
        logger.warning("Catalog has no items: %s:%s", catalog_type, catalog_id)
        return []

    candidates = [item for item in items if isinstance(item, dict)]
    if options.genre and options.genre.strip():
        candidates = [item for item in candidates if matches_genre(item, options.genre)]

    metas = [to_meta(item, catalog_type) for item in candidates]

    skip = max(options.skip or 0, 0)
    if skip:
        metas = metas[skip:]
    if options.limit is not None and options.limit > 0:
        metas = metas[: options.limit]
    return metas
