"""Pydantic models exposed by the addon API."""
from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class CatalogHealthStatus(BaseModel):
    """State of the in-memory catalog snapshot."""

    status: Literal["ok", "degraded"] = Field(default="ok")
    catalogs: int = Field(default=0, description="Number of indexed catalogs.")
    loaded_at: datetime | None = Field(
        default=None, description="Timestamp of the snapshot currently being served."
    )
    last_error: str | None = Field(
        default=None, description="Reason the most recent reload was rejected, if any."
    )


class HealthStatus(BaseModel):
    """Service health payload."""

    status: Literal["ok"] = Field(default="ok")
    version: str = Field(description="Addon version.")
    uptime_seconds: float = Field(ge=0)
    timestamp: datetime
    catalog: CatalogHealthStatus = Field(default_factory=CatalogHealthStatus)


class ManifestExtra(BaseModel):
    """Extra request parameter advertised for a catalog."""

    model_config = ConfigDict(populate_by_name=True)

    name: str
    is_required: bool = Field(default=False, alias="isRequired")


class ManifestCatalog(BaseModel):
    """Catalog descriptor listed in the manifest."""

    type: str
    id: str
    name: str
    extra: list[ManifestExtra] = Field(default_factory=list)


class Manifest(BaseModel):
    """Discovery document describing the addon and its catalogs."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    version: str
    name: str
    description: str
    resources: list[str]
    types: list[str]
    catalogs: list[ManifestCatalog]
    id_prefixes: list[str] = Field(alias="idPrefixes")
    logo: str | None = None
    background: str | None = None


class CatalogResponse(BaseModel):
    """Page of metas returned for a catalog request."""

    metas: list[dict[str, Any]] = Field(default_factory=list)


class RootInfo(BaseModel):
    """Landing payload pointing clients at the manifest."""

    message: str
    manifest: str
    health: str


class ErrorResponse(BaseModel):
    error: str
    message: str
