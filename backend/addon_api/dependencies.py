"""FastAPI dependencies for the addon API."""
from fastapi import Depends, Request

from .services.catalog_index import CatalogIndex
from .settings import AddonSettings
from .state import AppState


def get_app_state(request: Request) -> AppState:
    """Resolve the shared application state from the FastAPI request."""
    return request.app.state.app_state


def get_settings(app_state: AppState = Depends(get_app_state)) -> AddonSettings:
    """Return the active addon settings."""
    return app_state.settings


def get_catalog_index(app_state: AppState = Depends(get_app_state)) -> CatalogIndex:
    """Return the catalog index dependency."""
    return app_state.index
