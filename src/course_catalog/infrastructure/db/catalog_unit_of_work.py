"""SQLAlchemy unit-of-work implementation for catalog import."""

from __future__ import annotations

from types import TracebackType

from sqlalchemy.orm import Session, sessionmaker

from course_catalog.application.catalog_store import CatalogRepository, CatalogUnitOfWork
from course_catalog.domain.catalog import CatalogCounts, CourseRecord, LessonRecord
from course_catalog.infrastructure.db.catalog_repository import SqlAlchemyCatalogRepository


class _UninitializedCatalogRepository(CatalogRepository):
    """Placeholder repository before entering active transaction."""

    def get_or_create_topic(self, name: str) -> str:
        raise RuntimeError("Unit of work is not active.")

    def get_or_create_instructor(self, name: str) -> str:
        raise RuntimeError("Unit of work is not active.")

    def upsert_course(self, name: str, topic_id: str, instructor_id: str) -> str:
        raise RuntimeError("Unit of work is not active.")

    def soft_delete_all_courses(self) -> int:
        raise RuntimeError("Unit of work is not active.")

    def next_section_order_index(self, course_id: str) -> int:
        raise RuntimeError("Unit of work is not active.")

    def create_section(self, course_id: str, name: str) -> str:
        raise RuntimeError("Unit of work is not active.")

    def find_lesson_by_file_path(self, file_path: str) -> LessonRecord | None:
        raise RuntimeError("Unit of work is not active.")

    def next_lesson_order_index(self, section_id: str) -> int:
        raise RuntimeError("Unit of work is not active.")

    def create_lesson(
        self,
        *,
        section_id: str,
        name: str,
        file_path: str,
        file_size: int,
    ) -> str:
        raise RuntimeError("Unit of work is not active.")

    def update_lesson_file_size(self, lesson_id: str, file_size: int) -> None:
        raise RuntimeError("Unit of work is not active.")

    def update_lesson_media(
        self,
        lesson_id: str,
        *,
        duration_seconds: float,
        thumbnail_path: str | None,
    ) -> None:
        raise RuntimeError("Unit of work is not active.")

    def get_course_by_slug(self, slug: str) -> CourseRecord | None:
        raise RuntimeError("Unit of work is not active.")

    def list_courses(self) -> list[CourseRecord]:
        raise RuntimeError("Unit of work is not active.")

    def counts(self) -> CatalogCounts:
        raise RuntimeError("Unit of work is not active.")


class SqlAlchemyCatalogUnitOfWork(CatalogUnitOfWork):
    """Manage transactional scope for catalog hierarchy writes."""

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory
        self._session: Session | None = None
        self.catalog: CatalogRepository = _UninitializedCatalogRepository()

    def __enter__(self) -> SqlAlchemyCatalogUnitOfWork:
        self._session = self._session_factory()
        self.catalog = SqlAlchemyCatalogRepository(self._session)
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        if exc is not None:
            self.rollback()

        session = self._session
        self._session = None
        self.catalog = _UninitializedCatalogRepository()
        if session is not None:
            session.close()

    def commit(self) -> None:
        session = self._require_session()
        session.commit()

    def rollback(self) -> None:
        session = self._session
        if session is not None:
            session.rollback()

    def _require_session(self) -> Session:
        if self._session is None:
            raise RuntimeError("Unit of work is not active.")
        return self._session
