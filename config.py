"""
Application settings.

Values come from the environment, after loading the project's `.env` file.

Environment variables:
- SALES_REPOSITORY: "memory" (default) or "supabase"
- SUPABASE_URL: Supabase project URL (required for the supabase backend)
- SUPABASE_KEY: Supabase API key (server-side key; required for the supabase backend)
- LOG_LEVEL: logging level name (default INFO)
- CORS_ORIGINS: comma-separated origins allowed to call the API (default *)
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Optional, Tuple

from dotenv import load_dotenv

_ENV_PATH = Path(__file__).parent / ".env"

REPOSITORY_BACKENDS = ("memory", "supabase")


@dataclass(frozen=True, slots=True)
class Settings:
    repository_backend: str = "memory"
    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None
    log_level: str = "INFO"
    cors_origins: Tuple[str, ...] = ("*",)

    def __post_init__(self) -> None:
        if self.repository_backend not in REPOSITORY_BACKENDS:
            raise RuntimeError(
                f"Invalid SALES_REPOSITORY: {self.repository_backend!r}. "
                f"Expected one of: {', '.join(REPOSITORY_BACKENDS)}."
            )


def _split_origins(raw: str) -> Tuple[str, ...]:
    origins = tuple(origin.strip() for origin in raw.split(",") if origin.strip())
    return origins or ("*",)


def load_settings() -> Settings:
    """Read settings from the environment (and `.env`, if present)."""

    load_dotenv(dotenv_path=_ENV_PATH)
    return Settings(
        repository_backend=os.getenv("SALES_REPOSITORY", "memory").strip().lower(),
        supabase_url=os.getenv("SUPABASE_URL") or None,
        supabase_key=os.getenv("SUPABASE_KEY") or None,
        log_level=os.getenv("LOG_LEVEL", "INFO").strip().upper(),
        cors_origins=_split_origins(os.getenv("CORS_ORIGINS", "*")),
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return load_settings()


__all__ = ["Settings", "get_settings", "load_settings"]
