"""Configuration utilities for infrastructure layer."""

import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent


def load_environment(root: Optional[Path] = None) -> None:
    """
    Load ``.env`` then ``.env.test`` into the process environment.

    ``.env.test`` overrides ``.env``; variables already exported by the
    shell win over ``.env``.

    Args:
        root: Directory holding the dotenv files (defaults to project root)
    """
    base = root or _PROJECT_ROOT
    load_dotenv(base / ".env")
    test_env = base / ".env.test"
    if test_env.exists():
        load_dotenv(test_env, override=True)


def get_repository_backend() -> str:
    """
    Get persistence backend.

    Returns:
        "inmemory" (default) or "mongodb"
    """
    return os.getenv("REPOSITORY_BACKEND", "inmemory").lower()


def get_mongodb_uri() -> Optional[str]:
    """MONGODB_URI with ``${VAR}`` references resolved from the environment."""
    raw = os.getenv("MONGODB_URI")
    return os.path.expandvars(raw) if raw else None


def get_mongodb_database() -> str:
    """
    Get MongoDB database name.

    Returns:
        Database name from MONGODB_DATABASE env var, defaults to "comensales"
    """
    return os.getenv("MONGODB_DATABASE", "comensales")


def _get_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from e
    if value < 1:
        raise ValueError(f"{name} must be >= 1, got {value}")
    return value


def get_in_query_limit() -> int:
    """Max ids per "in" query for activity lookups (IN_QUERY_LIMIT, default 10)."""
    return _get_int("IN_QUERY_LIMIT", 10)


def get_enrollment_in_query_limit() -> int:
    """Max ids per "in" query for enrollment lookups (ENROLLMENT_IN_QUERY_LIMIT, default 30)."""
    return _get_int("ENROLLMENT_IN_QUERY_LIMIT", 30)


def get_store_retry_attempts() -> int:
    """Attempts for transient document store failures (STORE_RETRY_ATTEMPTS, default 3)."""
    return _get_int("STORE_RETRY_ATTEMPTS", 3)


def get_log_level() -> str:
    return os.getenv("LOG_LEVEL", "INFO").upper()


def get_log_format() -> str:
    """
    Get log renderer.

    Returns:
        "console" (default) or "json"
    """
    return os.getenv("LOG_FORMAT", "console").lower()
