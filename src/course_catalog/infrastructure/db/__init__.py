"""Database infrastructure package."""

from course_catalog.infrastructure.db.base import Base
from course_catalog.infrastructure.db.catalog_repository import SqlAlchemyCatalogRepository
from course_catalog.infrastructure.db.catalog_unit_of_work import SqlAlchemyCatalogUnitOfWork
from course_catalog.infrastructure.db.config import get_database_path, make_sqlite_url
from course_catalog.infrastructure.db.session import (
    create_session_factory,
    create_sqlite_engine,
    initialize_schema,
)

__all__ = [
    "Base",
    "SqlAlchemyCatalogRepository",
    "SqlAlchemyCatalogUnitOfWork",
    "create_session_factory",
    "create_sqlite_engine",
    "get_database_path",
    "initialize_schema",
    "make_sqlite_url",
]
