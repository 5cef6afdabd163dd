"""Database configuration helpers."""

from __future__ import annotations

import os
from pathlib import Path

DEFAULT_DB_FILENAME = "catalog.db"
DB_PATH_ENV_VAR = "CATALOG_DB_PATH"


def default_database_path() -> Path:
    """Return the per-user SQLite location used when nothing is configured."""
    return (Path.home() / ".video-course-catalog" / DEFAULT_DB_FILENAME).resolve()


def get_database_path() -> Path:
    """Return configured SQLite database path."""
    configured = os.environ.get(DB_PATH_ENV_VAR, "").strip()
    if configured:
        return Path(configured).expanduser().resolve()

    return default_database_path()


def make_sqlite_url(database_path: Path) -> str:
    """Build SQLAlchemy SQLite URL from path."""
    return f"sqlite:///{database_path.as_posix()}"
