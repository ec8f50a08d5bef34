"""Runtime configuration for the catalog addon."""
from __future__ import annotations

from typing import Annotated, Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

# Level names understood by uvicorn; "warn" and "fatal" are aliases.
LOG_LEVELS = ("critical", "error", "warning", "info", "debug", "trace")
_LOG_LEVEL_ALIASES = {"warn": "warning", "fatal": "critical"}


class AddonSettings(BaseSettings):
    """Environment-aware settings for the addon service."""

    addon_id: str = Field(
        default="com.example.curated-catalog",
        description="Reverse-domain identifier published in the manifest.",
    )
    addon_version: str = Field(default="0.2.0", description="Addon version string.")
    addon_name: str = Field(default="Curated Catalog", description="Human readable addon name.")
    addon_description: str = Field(
        default="Curated collection of movies and series served from a static catalog file.",
        description="Description shown by the client when installing the addon.",
    )
    addon_logo: str | None = Field(default=None, description="Optional logo URL.")
    addon_background: str | None = Field(default=None, description="Optional background URL.")
    id_prefixes: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: ["tt"],
        description="Content id prefixes handled by the addon (comma separated in the environment).",
    )
    catalog_data_path: str = Field(
        default="./catalog_data.json", description="Path of the catalog JSON document."
    )
    watch_catalog: bool = Field(
        default=True, description="Reload the catalog automatically when the file changes."
    )
    reload_debounce_seconds: float = Field(
        default=1.0,
        ge=0,
        description="Quiet period after the last file change before reloading.",
    )
    watch_poll_interval: float = Field(
        default=0.5, gt=0, description="Seconds between file change checks."
    )
    host: str = Field(default="0.0.0.0", description="Interface the HTTP server binds to.")
    port: int = Field(default=7000, description="Port the HTTP server listens on.")
    log_level: str = Field(
        default="info",
        description="Logging verbosity: critical, error, warning (or warn), info, debug or trace.",
    )
    environment: str = Field(
        default="production",
        description="Deployment environment; 'local' enables the public tunnel.",
    )
    ngrok_authtoken: str | None = Field(default=None, description="ngrok auth token.")
    ngrok_domain: str | None = Field(default=None, description="Reserved ngrok domain.")
    ngrok_region: str = Field(default="us", description="ngrok region code.")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @field_validator("id_prefixes", mode="before")
    @classmethod
    def _split_prefixes(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [part.strip() for part in value.split(",") if part.strip()]
        return value

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalize_log_level(cls, value: Any) -> Any:
        if not isinstance(value, str):
            return value
        level = _LOG_LEVEL_ALIASES.get(value.strip().lower(), value.strip().lower())
        if level not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(LOG_LEVELS)}")
        return level

    @property
    def is_local(self) -> bool:
        return self.environment.strip().lower() == "local"
