"""Engine/session bootstrap for the SQLite catalog."""

from __future__ import annotations

from pathlib import Path

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker

from course_catalog.infrastructure.db.models import Base
from course_catalog.infrastructure.db.config import make_sqlite_url


def create_sqlite_engine(database_path: Path) -> Engine:
    """Create SQLite engine for provided database path."""
    database_path.parent.mkdir(parents=True, exist_ok=True)
    return create_engine(make_sqlite_url(database_path))


def create_session_factory(engine: Engine) -> sessionmaker[Session]:
    """Create typed SQLAlchemy session factory."""
    return sessionmaker(
        bind=engine,
        autoflush=False,
        expire_on_commit=False,
        class_=Session,
    )


def initialize_schema(engine: Engine) -> None:
    """Create catalog tables that do not exist yet."""
    Base.metadata.create_all(engine)
