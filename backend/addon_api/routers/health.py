"""Health endpoints."""
from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from ..dependencies import get_app_state
from ..schemas import CatalogHealthStatus, HealthStatus
from ..state import AppState

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthStatus)
@router.get("/healthz", response_model=HealthStatus, include_in_schema=False)
def get_health(app_state: AppState = Depends(get_app_state)) -> HealthStatus:
    """Return service heartbeat information along with catalog snapshot state."""

    index = app_state.index
    catalog_status = CatalogHealthStatus(last_error=index.last_error)
    if index.initialized:
        snapshot = index.snapshot()
        catalog_status.catalogs = len(snapshot.mapping)
        catalog_status.loaded_at = snapshot.loaded_at
    if index.last_error is not None:
        catalog_status.status = "degraded"

    return HealthStatus(
        version=app_state.settings.addon_version,
        uptime_seconds=app_state.uptime(),
        timestamp=datetime.now(timezone.utc),
        catalog=catalog_status,
    )
