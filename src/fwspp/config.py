"""
Application settings.

Values come from environment variables prefixed ``FWSPP_`` (or a ``.env``
file in the working directory), e.g. ``FWSPP_EXPORT_DIR=/data/fwspp``.
Per-run query options live in :class:`fwspp.schemas.QueryConfig`.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Process-wide configuration."""

    model_config = SettingsConfigDict(env_prefix="FWSPP_", env_file=".env", extra="ignore")

    app_name: str = "fwspp"
    app_env: str = "development"
    debug: bool = False
    log_level: str = "INFO"

    boundary_dir: Path = Field(default=Path("data/boundaries"))
    export_dir: Path = Field(default=Path("data/occurrences"))

    timeout: int = Field(default=1200, gt=0, description="HTTP timeout (s) per request")
    export_ttl_days: int = Field(default=30, ge=0)


@lru_cache
def get_settings() -> Settings:
    """Return the cached settings instance."""
    return Settings()
