"""Centralised application settings loaded from environment / .env file."""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent


def _resolve_db_dir() -> Path:
    """Return (and create) the directory that holds the SQLite file."""
    d = _PROJECT_ROOT / "data"
    d.mkdir(parents=True, exist_ok=True)
    return d


_DB_DIR = _resolve_db_dir()
_DEFAULT_DB_URL = f"sqlite+aiosqlite:///{_DB_DIR / 'vibeshift.db'}"


class Settings(BaseSettings):
    """All runtime configuration for the vibeshift service.

    Values are read from environment variables first, then from a *.env* file
    located at the project root.  Every variable lives in a flat namespace
    (``BANDIT_API_BASE_URL``, ``POLICY_BACKEND`` ...).
    """

    model_config = SettingsConfigDict(
        env_file=str(_PROJECT_ROOT / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Policy service ────────────────────────────────────────
    bandit_api_base_url: str = "http://localhost:8080"
    bandit_request_timeout: float = 10.0
    policy_backend: Literal["http", "local"] = "http"
    remote_curve: bool = False  # use POST /playlist/recommend instead of the local curve

    # ── Curve defaults ────────────────────────────────────────
    curve_neutral: float = 0.55
    default_base_bpm: int = 96
    default_session_length: int = 10

    # ── Database ──────────────────────────────────────────────
    database_url: str = _DEFAULT_DB_URL

    # ── API server ────────────────────────────────────────────
    api_host: str = "0.0.0.0"
    api_port: int = int(os.getenv("PORT", "8000"))
    api_secret_key: str = "change-me-to-a-random-secret"
    cors_origins: str = "*"  # comma-separated origins, or "*" for all

    # ── Logging ───────────────────────────────────────────────
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"


@lru_cache
def get_settings() -> Settings:
    """Return a cached :class:`Settings` singleton."""
    return Settings()
