"""Application factory for the catalog addon API."""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .routers import catalog, health, manifest
from .services.catalog_index import CatalogIndex
from .services.manifest import build_manifest
from .settings import AddonSettings
from .state import AppState

logger = logging.getLogger(__name__)


def create_app(
    settings: AddonSettings | None = None, index: CatalogIndex | None = None
) -> FastAPI:
    """Build and configure the FastAPI application.

    The catalog is loaded and the manifest configuration validated here, so a
    missing data file or identity field fails startup instead of the first
    request.
    """

    resolved_settings = settings or AddonSettings()
    app_state = AppState.from_settings(resolved_settings, index=index)

    addon_manifest = build_manifest(app_state.index, resolved_settings)
    logger.info("Addon ID: %s", addon_manifest["id"])
    logger.info("Addon Name: %s", addon_manifest["name"])
    logger.info("Supported Types: %s", ", ".join(addon_manifest["types"]))
    logger.info("Total Catalogs: %d", len(addon_manifest["catalogs"]))

    @asynccontextmanager
    async def lifespan(_: FastAPI):
        app_state.start_watcher()
        try:
            yield
        finally:
            app_state.stop_watcher()

    app = FastAPI(
        title=resolved_settings.addon_name,
        version=resolved_settings.addon_version,
        lifespan=lifespan,
    )
    app.state.app_state = app_state
    app.state.settings = app_state.settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "OPTIONS"],
        allow_headers=["Content-Type"],
    )

    for router in (
        manifest.router,
        catalog.router,
        health.router,
    ):
        app.include_router(router)

    return app
