"""Runtime settings sourced from the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional, Tuple

DEFAULT_CORS_ORIGINS: Tuple[str, ...] = (
    "http://localhost",
    "http://localhost:3000",
    "http://localhost:8000",
)


@dataclass(frozen=True)
class Settings:
    log_level: str = "INFO"
    api_prefix: str = "/api/v1"
    request_logging: bool = True
    max_page_limit: Optional[int] = None
    cors_origins: Tuple[str, ...] = DEFAULT_CORS_ORIGINS


def _normalize_bool(value: str | None, default: bool = True) -> bool:
    """Return normalized boolean from environment-style value."""
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"", "0", "false", "no", "off"}:
        return False
    if normalized in {"1", "true", "yes", "on"}:
        return True
    return default


def _optional_positive_int(value: str | None) -> Optional[int]:
    if not value or not value.strip():
        return None
    try:
        parsed = int(value.strip())
    except ValueError:
        return None
    return parsed if parsed > 0 else None


def _normalize_prefix(value: str | None, default: str) -> str:
    raw = (value if value is not None else default).strip()
    if not raw or raw == "/":
        return ""
    return "/" + raw.strip("/")


def _split_list(value: str | None, default: Tuple[str, ...]) -> Tuple[str, ...]:
    if value is None:
        return default
    return tuple(entry.strip() for entry in value.split(",") if entry.strip())


@lru_cache(maxsize=None)
def get_settings() -> Settings:
    """Return the cached settings built from the current environment."""
    return Settings(
        log_level=(os.getenv("LOG_LEVEL") or "INFO").strip().upper(),
        api_prefix=_normalize_prefix(os.getenv("API_PREFIX"), "/api/v1"),
        request_logging=_normalize_bool(os.getenv("REQUEST_LOGGING"), default=True),
        max_page_limit=_optional_positive_int(os.getenv("MAX_PAGE_LIMIT")),
        cors_origins=_split_list(os.getenv("CORS_ORIGINS"), DEFAULT_CORS_ORIGINS),
    )


def refresh_settings_cache() -> None:
    """Invalidate cached settings (useful for tests)."""
    get_settings.cache_clear()
