"""Runtime settings loaded from environment / .env file."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """All runtime configuration for strapsync.

    Every variable lives in the flat ``STRAPSYNC_`` namespace, e.g.
    ``STRAPSYNC_DATABASE_URL``.  Command-line options take precedence.
    """

    model_config = SettingsConfigDict(
        env_prefix="STRAPSYNC_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Storage ───────────────────────────────────────────────
    database_url: str = "sqlite:///strapsync.db"
    capture_dir: Path = Path("captures")  # Raw notification logs for `replay`

    # ── Logging ───────────────────────────────────────────────
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # ── Strap connection ──────────────────────────────────────
    strap_address: str | None = None
    scan_timeout: float = 10.0
    idle_timeout: float = 30.0  # Give up when the strap goes quiet this long


@lru_cache
def get_settings() -> Settings:
    """Return a cached :class:`Settings` singleton."""
    return Settings()
