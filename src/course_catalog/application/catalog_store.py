"""Application ports for the relational catalog store."""

from __future__ import annotations

from collections.abc import Callable
from types import TracebackType
from typing import Protocol

from course_catalog.domain.catalog import CatalogCounts, CourseRecord, LessonRecord


class CatalogRepository(Protocol):
    """Repository port for topic/instructor/course/section/lesson rows."""

    def get_or_create_topic(self, name: str) -> str:
        """Return topic id for the slug of name, creating the row if missing."""
        ...

    def get_or_create_instructor(self, name: str) -> str:
        """Return instructor id for the slug of name, creating the row if missing."""
        ...

    def upsert_course(self, name: str, topic_id: str, instructor_id: str) -> str:
        """Create or update the course with the slug of name and mark it active."""
        ...

    def soft_delete_all_courses(self) -> int:
        """Mark every course deleted and return how many rows exist."""
        ...

    def next_section_order_index(self, course_id: str) -> int:
        """Return max section order index + 1, or 0 for an empty course."""
        ...

    def create_section(self, course_id: str, name: str) -> str:
        """Append a new section to the course."""
        ...

    def find_lesson_by_file_path(self, file_path: str) -> LessonRecord | None:
        """Return lesson whose catalog-relative file path matches."""
        ...

    def next_lesson_order_index(self, section_id: str) -> int:
        """Return max lesson order index + 1, or 0 for an empty section."""
        ...

    def create_lesson(
        self,
        *,
        section_id: str,
        name: str,
        file_path: str,
        file_size: int,
    ) -> str:
        """Append a new lesson to the section."""
        ...

    def update_lesson_file_size(self, lesson_id: str, file_size: int) -> None:
        """Refresh stored file size."""
        ...

    def update_lesson_media(
        self,
        lesson_id: str,
        *,
        duration_seconds: float,
        thumbnail_path: str | None,
    ) -> None:
        """Store probed duration and, when given, thumbnail path."""
        ...

    def get_course_by_slug(self, slug: str) -> CourseRecord | None:
        """Return course by slug."""
        ...

    def list_courses(self) -> list[CourseRecord]:
        """Return all courses ordered by name."""
        ...

    def counts(self) -> CatalogCounts:
        """Return row counts per table."""
        ...


class CatalogUnitOfWork(Protocol):
    """Unit-of-work port around catalog store operations."""

    catalog: CatalogRepository

    def __enter__(self) -> CatalogUnitOfWork:
        """Start transactional scope."""
        ...

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        """Finalize transactional scope."""
        ...

    def commit(self) -> None:
        """Commit current transaction."""
        ...

    def rollback(self) -> None:
        """Rollback current transaction."""
        ...


CatalogUnitOfWorkFactory = Callable[[], CatalogUnitOfWork]
