"""Shared state container for the addon API."""
from __future__ import annotations

import time
from dataclasses import dataclass, field

from .services.catalog_index import CatalogIndex
from .services.catalog_watcher import CatalogWatcher
from .settings import AddonSettings


@dataclass(slots=True)
class AppState:
    """Owns the catalog index and its watcher for the application lifetime."""

    settings: AddonSettings
    index: CatalogIndex
    watcher: CatalogWatcher | None = None
    started_at: float = field(default_factory=time.monotonic)

    @classmethod
    def from_settings(
        cls, settings: AddonSettings, index: CatalogIndex | None = None
    ) -> "AppState":
        """Load the catalog (fatal when it cannot be read) and build the state."""

        if index is None:
            index = CatalogIndex()
        if not index.initialized:
            index.load(settings.catalog_data_path)
        return cls(settings=settings, index=index)

    def start_watcher(self) -> CatalogWatcher | None:
        """Start the file watcher when enabled and the index is file-backed."""

        if not self.settings.watch_catalog or self.index.source_path is None:
            return None
        if self.watcher is None:
            self.watcher = CatalogWatcher(
                self.index,
                self.index.source_path,
                debounce_seconds=self.settings.reload_debounce_seconds,
                poll_interval=self.settings.watch_poll_interval,
            )
        self.watcher.start()
        return self.watcher

    def stop_watcher(self) -> None:
        if self.watcher is not None:
            self.watcher.stop()

    def uptime(self) -> float:
        return max(time.monotonic() - self.started_at, 0.0)
