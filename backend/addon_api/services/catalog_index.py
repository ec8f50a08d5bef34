"""In-memory index over the catalog JSON document served by the addon."""
from __future__ import annotations

import json
import logging
import os
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping, Union

logger = logging.getLogger(__name__)

CatalogEntry = dict[str, Any]
CatalogKey = tuple[str, str]
CatalogSource = Union[str, os.PathLike, bytes]


class CatalogError(RuntimeError):
    """Base class for catalog index failures."""


class CatalogLoadError(CatalogError):
    """Raised when the catalog document cannot be read, parsed or validated."""

    def __init__(self, message: str) -> None:
        super().__init__(f"Failed to load catalog data: {message}")
        self.reason = message


class CatalogNotInitializedError(CatalogError):
    """Raised when the index is queried before a successful load."""

    def __init__(self) -> None:
        super().__init__("Catalog data not initialized")


@dataclass(frozen=True, slots=True)
class CatalogSnapshot:
    """Immutable pairing of a parsed document and the lookup built from it.

    Snapshots are published whole; readers holding one never observe a
    concurrent reload.
    """

    document: Mapping[str, Any]
    catalogs: tuple[Any, ...]
    mapping: Mapping[CatalogKey, CatalogEntry]
    loaded_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def all_catalogs(self) -> list[dict[str, Any]]:
        """Return catalog identities in document order, as strings like the lookup keys."""

        return [
            {
                "catalog_type": str(catalog["catalog_type"]),
                "catalog_name": str(catalog["catalog_name"]),
            }
            for catalog in self.catalogs
            if _is_indexable(catalog)
        ]

    def supported_types(self) -> list[str]:
        """Return distinct catalog types in first-seen order."""

        seen: dict[str, None] = {}
        for catalog in self.catalogs:
            if isinstance(catalog, dict) and catalog.get("catalog_type"):
                seen.setdefault(str(catalog["catalog_type"]), None)
        return list(seen)

    def lookup(self, catalog_type: str, catalog_id: str) -> CatalogEntry | None:
        return self.mapping.get((catalog_type, catalog_id))


def _is_indexable(catalog: Any) -> bool:
    return (
        isinstance(catalog, dict)
        and bool(catalog.get("catalog_type"))
        and bool(catalog.get("catalog_name"))
    )


def _read_source(source: CatalogSource) -> bytes:
    if isinstance(source, (bytes, bytearray)):
        return bytes(source)
    path = Path(source)
    try:
        return path.read_bytes()
    except FileNotFoundError as exc:
        raise CatalogLoadError(f"Catalog data file not found: {path}") from exc
    except OSError as exc:
        raise CatalogLoadError(f"Unable to read {path}: {exc}") from exc


def parse_document(raw: bytes) -> Mapping[str, Any]:
    """Decode and validate the top-level catalog document shape."""

    try:
        data = json.loads(raw.decode("utf-8"))
    except UnicodeDecodeError as exc:
        raise CatalogLoadError(f"Catalog data is not valid UTF-8: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise CatalogLoadError(f"Catalog data is not valid JSON: {exc}") from exc

    if not isinstance(data, dict) or not isinstance(data.get("catalogs"), list):
        raise CatalogLoadError("Invalid catalog data format: expected { catalogs: [...] }")
    return data


def build_snapshot(document: Mapping[str, Any]) -> CatalogSnapshot:
    """Build a fresh lookup mapping in a single pass over the document."""

    catalogs = tuple(document["catalogs"])
    mapping: dict[CatalogKey, CatalogEntry] = {}
    for position, catalog in enumerate(catalogs):
        if not _is_indexable(catalog):
            logger.warning(
                "Skipping catalog at position %d: missing catalog_type or catalog_name",
                position,
            )
            continue
        key = (str(catalog["catalog_type"]), str(catalog["catalog_name"]))
        if key in mapping:
            logger.warning("Duplicate catalog key %s:%s; later entry wins", *key)
        mapping[key] = catalog

    logger.debug("Built catalog map with %d entries", len(mapping))
    return CatalogSnapshot(
        document=MappingProxyType(dict(document)),
        catalogs=catalogs,
        mapping=MappingProxyType(mapping),
    )


class CatalogIndex:
    """Owns the authoritative catalog snapshot and its reload procedure.

    Reads go through :meth:`snapshot` and never take a lock. Loads build a new
    snapshot off to the side and publish it with a single attribute
    assignment; the writer lock only serializes concurrent loads.
    """

    def __init__(self) -> None:
        self._snapshot: CatalogSnapshot | None = None
        self._source_path: Path | None = None
        self._last_error: str | None = None
        self._write_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Loading

    def load(self, source: CatalogSource) -> bool:
        """Load ``source`` and publish a new snapshot.

        Returns ``True`` when the snapshot was replaced and ``False`` when a
        failure was absorbed in favour of the previous snapshot. Raises
        :class:`CatalogLoadError` if no snapshot has ever been published.
        """

        if not isinstance(source, (bytes, bytearray)):
            source = Path(source).resolve()
            logger.info("Loading catalog data from: %s", source)

        try:
            snapshot = build_snapshot(parse_document(_read_source(source)))
        except CatalogLoadError as exc:
            with self._write_lock:
                self._last_error = exc.reason
                initialized = self._snapshot is not None
            if not initialized:
                logger.error("%s", exc)
                raise
            logger.warning("Catalog reload failed, keeping previous data: %s", exc.reason)
            return False

        with self._write_lock:
            self._snapshot = snapshot
            self._last_error = None
            if isinstance(source, Path):
                self._source_path = source

        logger.info("Successfully loaded %d catalogs", len(snapshot.catalogs))
        return True

    def reload(self, source: CatalogSource | None = None) -> bool:
        """Reload from ``source`` or from the path of the last file load."""

        target = source if source is not None else self._source_path
        if target is None:
            raise CatalogLoadError("No catalog source available to reload from")
        return self.load(target)

    # ------------------------------------------------------------------
    # Read accessors

    @property
    def initialized(self) -> bool:
        return self._snapshot is not None

    @property
    def source_path(self) -> Path | None:
        return self._source_path

    @property
    def last_error(self) -> str | None:
        """Reason for the most recent failed load, cleared on success."""

        return self._last_error

    def snapshot(self) -> CatalogSnapshot:
        """Return the current snapshot or raise if nothing is loaded."""

        snapshot = self._snapshot
        if snapshot is None:
            raise CatalogNotInitializedError()
        return snapshot

    @property
    def catalog_data(self) -> Mapping[str, Any]:
        """Raw document of the current snapshot, including unindexed catalogs."""

        return self.snapshot().document

    def all_catalogs(self) -> list[dict[str, Any]]:
        return self.snapshot().all_catalogs()

    def supported_types(self) -> list[str]:
        return self.snapshot().supported_types()

    def lookup(self, catalog_type: str, catalog_id: str) -> CatalogEntry | None:
        snapshot = self._snapshot
        if snapshot is None:
            raise CatalogNotInitializedError()
        return snapshot.lookup(catalog_type, catalog_id)

    def catalog_exists(self, catalog_type: str, catalog_id: str) -> bool:
        snapshot = self._snapshot
        if snapshot is None:
            return False
        return snapshot.lookup(catalog_type, catalog_id) is not None
