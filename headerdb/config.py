"""Defaults for header checks, overridable through the environment."""

from __future__ import annotations

import logging
import os

logger = logging.getLogger(__name__)


def env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("Ignoring %s=%r: expected an integer", name, raw)
        return default


def env_int_list(name: str, default: tuple[int, ...]) -> tuple[int, ...]:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return tuple(int(part) for part in raw.split(",") if part.strip())
    except ValueError:
        logger.warning("Ignoring %s=%r: expected comma-separated integers", name, raw)
        return default


def env_str_list(name: str, default: tuple[str, ...]) -> tuple[str, ...]:
    raw = os.getenv(name, "")
    return tuple(part.strip() for part in raw.split(",") if part.strip()) or default


class Config:
    API_LEVELS: tuple[int, ...] = env_int_list(
        "HEADERDB_API_LEVELS", (9, 12, 13, 14, 15, 16, 17, 18, 19, 21, 23, 24)
    )
    """API levels compiled by default. Override with HEADERDB_API_LEVELS."""

    ARCHS: tuple[str, ...] = env_str_list(
        "HEADERDB_ARCHS", ("arm", "arm64", "mips", "mips64", "x86", "x86_64")
    )
    """Architectures compiled by default. Override with HEADERDB_ARCHS."""

    JOBS: int = env_int("HEADERDB_JOBS", 0) or (os.cpu_count() or 1)
    """Parse worker threads. Override with HEADERDB_JOBS."""

    LOG_LEVEL: str = os.getenv("HEADERDB_LOG_LEVEL", "WARNING")

    FUTURE_API_LEVEL: int = 10000
    """Value of __ANDROID_API_FUTURE__ when evaluating preprocessor conditions."""

    MIN_64BIT_API_LEVEL: int = 21
    """64-bit architectures don't exist below this level."""

    HEADER_SUFFIXES: frozenset[str] = frozenset({".h"})

    EXCLUDED_DIRS: frozenset[str] = frozenset({".git", ".hg", ".svn", "__pycache__"})
