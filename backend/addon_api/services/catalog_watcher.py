"""Debounced file watcher that reloads the catalog index on change."""
from __future__ import annotations

import logging
import os
import threading
from pathlib import Path
from typing import Callable

from .catalog_index import CatalogError, CatalogIndex

logger = logging.getLogger(__name__)

FileSignature = tuple[int, int] | None


def file_signature(path: Path) -> FileSignature:
    """Return ``(mtime_ns, size)`` for ``path`` or ``None`` when it is missing."""

    try:
        stat = os.stat(path)
    except OSError:
        return None
    return stat.st_mtime_ns, stat.st_size


class CatalogWatcher:
    """Poll a catalog file and reload the index after a quiet period.

    Every detected change restarts the debounce timer, so a burst of writes
    produces a single reload once the file has been still for
    ``debounce_seconds``.
    """

    def __init__(
        self,
        index: CatalogIndex,
        path: str | os.PathLike,
        *,
        debounce_seconds: float = 1.0,
        poll_interval: float = 0.5,
        timer_factory: Callable[[float, Callable[[], None]], threading.Timer] = threading.Timer,
    ) -> None:
        self._index = index
        self._path = Path(path).resolve()
        self._debounce_seconds = debounce_seconds
        self._poll_interval = poll_interval
        self._timer_factory = timer_factory
        self._lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._timer: threading.Timer | None = None
        self._signature: FileSignature = None
        self.reload_count = 0

    @property
    def path(self) -> Path:
        return self._path

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Begin polling in a daemon thread."""

        with self._lock:
            if self._thread is not None and self._thread.is_alive():
                return
            self._stop_event.clear()
            self._signature = file_signature(self._path)
            self._thread = threading.Thread(
                target=self._poll_loop, name="catalog-watcher", daemon=True
            )
            self._thread.start()
        logger.info("File watcher set up for: %s", self._path)

    def stop(self, timeout: float | None = 5.0) -> None:
        """Stop polling and cancel any pending reload."""

        self._stop_event.set()
        with self._lock:
            thread = self._thread
            self._thread = None
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)
            logger.info("File watcher stopped")

    def notify_change(self) -> None:
        """Record a change event and (re)arm the debounce timer."""

        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            timer = self._timer_factory(self._debounce_seconds, self._fire)
            timer.daemon = True
            self._timer = timer
            timer.start()

    def _poll_loop(self) -> None:
        while not self._stop_event.wait(self._poll_interval):
            signature = file_signature(self._path)
            if signature != self._signature:
                self._signature = signature
                logger.info("Catalog data file changed (%s), reloading...", self._path.name)
                self.notify_change()

    def _fire(self) -> None:
        with self._lock:
            if self._timer is threading.current_thread():
                self._timer = None
        if self._stop_event.is_set():
            return
        try:
            reloaded = self._index.reload(self._path)
        except CatalogError as exc:
            logger.warning("Catalog reload failed: %s", exc)
            return
        with self._lock:
            self.reload_count += 1
        if reloaded:
            logger.info("Catalog data reloaded successfully")
