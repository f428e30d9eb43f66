"""Application configuration helpers read from the environment."""

from __future__ import annotations

import os
from functools import lru_cache

_TRUE_VALUES = {"1", "true", "yes", "on"}

DEFAULT_USER_AGENT = "fluxfeed (+https://github.com/fluxfeed/fluxfeed)"

__all__ = [
    "database_url",
    "is_create_all_enabled",
    "http_client_timeout",
    "http_client_user_agent",
    "max_parsing_error",
    "default_language",
]


def _read_flag(name: str) -> bool | None:
    """Return the parsed boolean value for ``name`` if explicitly set."""

    value = os.getenv(name)
    if value is None:
        return None
    normalized = value.strip()
    if not normalized:
        return None
    return normalized.lower() in _TRUE_VALUES


def _read_number(name: str, default: float) -> float:
    value = (os.getenv(name) or "").strip()
    if not value:
        return default
    try:
        return float(value)
    except ValueError:
        return default


def database_url() -> str:
    return os.getenv("DATABASE_URL", "sqlite:///./dev.db")


def is_create_all_enabled() -> bool:
    """Return ``True`` when ``init_db`` should create tables outside of tests."""

    flag = _read_flag("SQLMODEL_CREATE_ALL")
    if flag is None:
        return False
    return flag


@lru_cache(maxsize=1)
def http_client_timeout() -> float:
    """Return the timeout, in seconds, applied to every outbound request."""

    return _read_number("HTTP_CLIENT_TIMEOUT", 20.0)


@lru_cache(maxsize=1)
def http_client_user_agent() -> str:
    value = (os.getenv("HTTP_CLIENT_USER_AGENT") or "").strip()
    return value or DEFAULT_USER_AGENT


@lru_cache(maxsize=1)
def max_parsing_error() -> int:
    """Return the error count from which a feed is reported as failing.

    Only read-side queries use this threshold; refreshes are never disabled.
    """

    return int(_read_number("MAX_PARSING_ERROR", 3))


@lru_cache(maxsize=1)
def default_language() -> str:
    value = (os.getenv("DEFAULT_LANGUAGE") or "").strip()
    return value or "en_US"
