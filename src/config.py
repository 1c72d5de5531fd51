"""
Obligation Tracker - Centralized configuration.

Loads all settings from .env and validates them once at import time.
Every other module reads configuration through the `settings` singleton.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv
from pydantic import BaseModel, field_validator

# Load .env from project root (two levels up from src/config.py)
_ENV_PATH = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_ENV_PATH)

STORAGE_BACKENDS = ("json", "sqlite", "memory")


class Settings(BaseModel):
    """Application settings loaded from environment variables."""

    # LLM - provider-agnostic (gemini, anthropic, openai, cohere)
    LLM_PROVIDER: str = "gemini"
    LLM_MODEL: str = ""          # empty -> smart default per provider
    LLM_API_KEY: str = ""        # empty -> every capture asks for clarification
    LLM_TIMEOUT_SECONDS: float = 30.0

    # Storage: "json" | "sqlite" | "memory"
    STORAGE_BACKEND: str = "json"
    DATA_PATH: str = "data/obligations.json"
    DATABASE_PATH: str = "data/obligations.db"

    # The observer's civil time; every horizon is computed in this zone
    TIMEZONE: str = "UTC"

    # HTTP API
    HOST: str = "127.0.0.1"
    PORT: int = 3000
    CORS_ALLOW_ORIGINS: list[str] = ["*"]

    # CLI
    API_URL: str = "http://localhost:3000"

    @field_validator("CORS_ALLOW_ORIGINS", mode="before")
    @classmethod
    def parse_origins(cls, v: str | list[str]) -> list[str]:
        if isinstance(v, list):
            return v
        if isinstance(v, str) and v.strip():
            return [o.strip() for o in v.split(",") if o.strip()]
        return ["*"]

    @field_validator("STORAGE_BACKEND", mode="before")
    @classmethod
    def normalize_backend(cls, v: str) -> str:
        return str(v).strip().lower()

    @property
    def tz(self) -> ZoneInfo:
        """The observer's timezone as a ZoneInfo."""
        return ZoneInfo(self.TIMEZONE)


def _load_settings() -> Settings:
    """Load settings from environment, validating the keys that have no safe fallback."""
    timezone = os.getenv("TIMEZONE", "UTC").strip() or "UTC"
    try:
        ZoneInfo(timezone)
    except (ZoneInfoNotFoundError, ValueError):
        print(f"ERROR: TIMEZONE={timezone!r} is not a valid IANA timezone", file=sys.stderr)
        sys.exit(1)

    backend = os.getenv("STORAGE_BACKEND", "json").strip().lower()
    if backend not in STORAGE_BACKENDS:
        print(
            f"ERROR: STORAGE_BACKEND={backend!r} is not one of {', '.join(STORAGE_BACKENDS)}",
            file=sys.stderr,
        )
        sys.exit(1)

    return Settings(
        LLM_PROVIDER=os.getenv("LLM_PROVIDER", "gemini"),
        LLM_MODEL=os.getenv("LLM_MODEL", ""),
        LLM_API_KEY=os.getenv("LLM_API_KEY", ""),
        LLM_TIMEOUT_SECONDS=os.getenv("LLM_TIMEOUT_SECONDS", "30"),
        STORAGE_BACKEND=backend,
        DATA_PATH=os.getenv("DATA_PATH", "data/obligations.json"),
        DATABASE_PATH=os.getenv("DATABASE_PATH", "data/obligations.db"),
        TIMEZONE=timezone,
        HOST=os.getenv("HOST", "127.0.0.1"),
        PORT=os.getenv("PORT", "3000"),
        CORS_ALLOW_ORIGINS=os.getenv("CORS_ALLOW_ORIGINS", "*"),
        API_URL=os.getenv("API_URL", "http://localhost:3000"),
    )


# Singleton - imported by all other modules as:
#   from src.config import settings
settings = _load_settings()
