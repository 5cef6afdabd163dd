"""Catalog settings resolved from environment variables."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from course_catalog.application.errors import CatalogConfigurationError
from course_catalog.infrastructure.db.config import DB_PATH_ENV_VAR, default_database_path

UPLOADS_PATH_ENV_VAR = "CATALOG_UPLOADS_PATH"
CACHE_PATH_ENV_VAR = "CATALOG_CACHE_PATH"
USE_FFMPEG_ENV_VAR = "CATALOG_USE_FFMPEG"
FFPROBE_PATH_ENV_VAR = "CATALOG_FFPROBE_PATH"
FFMPEG_PATH_ENV_VAR = "CATALOG_FFMPEG_PATH"
PROBE_TIMEOUT_ENV_VAR = "CATALOG_PROBE_TIMEOUT_SECONDS"
MEDIA_WORKERS_ENV_VAR = "CATALOG_MEDIA_WORKERS"
HASH_WORKERS_ENV_VAR = "CATALOG_HASH_WORKERS"
THUMBNAIL_OFFSET_ENV_VAR = "CATALOG_THUMBNAIL_OFFSET_SECONDS"

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})
_FALSE_VALUES = frozenset({"0", "false", "no", "off"})


@dataclass(frozen=True)
class CatalogSettings:
    """Runtime configuration for scanning, caching, probing and storage."""

    database_path: Path
    uploads_path: Path
    cache_path: Path
    use_ffmpeg: bool = True
    ffprobe_path: str | None = None
    ffmpeg_path: str | None = None
    probe_timeout_seconds: float = 30.0
    media_workers: int = 2
    hash_workers: int = 4
    thumbnail_offset_seconds: float = 10.0

    @classmethod
    def from_environ(cls, environ: Mapping[str, str] | None = None) -> CatalogSettings:
        """Build settings; blank values fall back to defaults."""
        env = os.environ if environ is None else environ

        database_raw = _read(env, DB_PATH_ENV_VAR)
        database_path = (
            Path(database_raw).expanduser().resolve() if database_raw else default_database_path()
        )
        return cls(
            database_path=database_path,
            uploads_path=_read_path(env, UPLOADS_PATH_ENV_VAR, fallback="uploads"),
            cache_path=_read_path(env, CACHE_PATH_ENV_VAR, fallback="cache"),
            use_ffmpeg=_read_bool(env, USE_FFMPEG_ENV_VAR, fallback=True),
            ffprobe_path=_read(env, FFPROBE_PATH_ENV_VAR),
            ffmpeg_path=_read(env, FFMPEG_PATH_ENV_VAR),
            probe_timeout_seconds=_read_float(env, PROBE_TIMEOUT_ENV_VAR, fallback=30.0),
            media_workers=_read_positive_int(env, MEDIA_WORKERS_ENV_VAR, fallback=2),
            hash_workers=_read_positive_int(env, HASH_WORKERS_ENV_VAR, fallback=4),
            thumbnail_offset_seconds=_read_float(env, THUMBNAIL_OFFSET_ENV_VAR, fallback=10.0),
        )


def _read(env: Mapping[str, str], name: str) -> str | None:
    resolved = env.get(name, "").strip()
    return resolved or None


def _read_path(env: Mapping[str, str], name: str, *, fallback: str) -> Path:
    return Path(_read(env, name) or fallback).expanduser().resolve()


def _read_bool(env: Mapping[str, str], name: str, *, fallback: bool) -> bool:
    raw = _read(env, name)
    if raw is None:
        return fallback

    lowered = raw.lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise CatalogConfigurationError(f"{name} must be a boolean, got {raw!r}.")


def _read_float(env: Mapping[str, str], name: str, *, fallback: float) -> float:
    raw = _read(env, name)
    if raw is None:
        return fallback

    try:
        value = float(raw)
    except ValueError as exc:
        raise CatalogConfigurationError(f"{name} must be a number, got {raw!r}.") from exc
    if value <= 0:
        raise CatalogConfigurationError(f"{name} must be positive, got {raw!r}.")
    return value


def _read_positive_int(env: Mapping[str, str], name: str, *, fallback: int) -> int:
    raw = _read(env, name)
    if raw is None:
        return fallback

    try:
        value = int(raw)
    except ValueError as exc:
        raise CatalogConfigurationError(f"{name} must be an integer, got {raw!r}.") from exc
    if value < 1:
        raise CatalogConfigurationError(f"{name} must be >= 1, got {raw!r}.")
    return value
