"""Lightweight configuration for the Eraforge runtime."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings, overridable through ``ERAFORGE_*`` variables."""

    model_config = SettingsConfigDict(
        env_prefix="ERAFORGE_", env_file=".env", env_file_encoding="utf-8"
    )

    data_dir: Path = Field(default=Path("saves"), description="Where save slots live")
    catalog_path: Path | None = Field(
        default=None,
        description="Reference catalog JSON; the bundled catalog is used when unset",
    )
    autosave_slot: str = Field(default="autosave", description="Slot written by autosave")
    tick_interval_seconds: float = Field(
        default=0.1,
        description="Real-time seconds between engine ticks while the clock runs",
        gt=0.0,
    )
    autosave_interval_seconds: float = Field(
        default=30.0,
        description="Real-time seconds between autosaves; zero disables autosave",
        ge=0.0,
    )
    load_autosave_on_start: bool = Field(
        default=True, description="Resume from the autosave slot when the API starts"
    )
    clock_autostart: bool = Field(
        default=True, description="Start ticking the engine as soon as the API starts"
    )
    cors_origins: list[str] = Field(
        default_factory=lambda: ["http://localhost:5173", "http://127.0.0.1:5173"],
        description="Origins allowed to call the HTTP API",
    )


@lru_cache
def get_settings() -> Settings:
    """Return a cached Settings instance."""

    settings = Settings()
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    return settings
