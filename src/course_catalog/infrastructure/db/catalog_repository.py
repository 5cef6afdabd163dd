"""SQLAlchemy repository for the topic/instructor/course/section/lesson hierarchy."""

from __future__ import annotations

from datetime import UTC, datetime
from uuid import uuid4

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from course_catalog.application.catalog_store import CatalogRepository
from course_catalog.application.text_format import slugify
from course_catalog.domain.catalog import CatalogCounts, CourseRecord, CourseState, LessonRecord
from course_catalog.infrastructure.db.models import (
    CourseModel,
    InstructorModel,
    LessonModel,
    SectionModel,
    TopicModel,
)


class SqlAlchemyCatalogRepository(CatalogRepository):
    """Persist catalog hierarchy rows via SQLAlchemy."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def get_or_create_topic(self, name: str) -> str:
        slug = slugify(name)
        existing = self._session.execute(
            select(TopicModel).where(TopicModel.slug == slug)
        ).scalar_one_or_none()
        if existing is not None:
            return existing.id

        topic = TopicModel(id=_new_id(), name=name, slug=slug)
        self._session.add(topic)
        self._session.flush()
        return topic.id

    def get_or_create_instructor(self, name: str) -> str:
        slug = slugify(name)
        existing = self._session.execute(
            select(InstructorModel).where(InstructorModel.slug == slug)
        ).scalar_one_or_none()
        if existing is not None:
            return existing.id

        instructor = InstructorModel(id=_new_id(), name=name, slug=slug)
        self._session.add(instructor)
        self._session.flush()
        return instructor.id

    def upsert_course(self, name: str, topic_id: str, instructor_id: str) -> str:
        slug = slugify(name)
        now = _utc_now()
        course = self._session.execute(
            select(CourseModel).where(CourseModel.slug == slug)
        ).scalar_one_or_none()

        if course is None:
            course = CourseModel(
                id=_new_id(),
                name=name,
                slug=slug,
                topic_id=topic_id,
                instructor_id=instructor_id,
                state=CourseState.ACTIVE.value,
                avg_rating=0.0,
                ratings_count=0,
                created_at=now,
                updated_at=now,
            )
            self._session.add(course)
        else:
            course.name = name
            course.topic_id = topic_id
            course.instructor_id = instructor_id
            course.state = CourseState.ACTIVE.value
            course.updated_at = now

        self._session.flush()
        return course.id

    def soft_delete_all_courses(self) -> int:
        self._session.execute(
            update(CourseModel).values(
                state=CourseState.DELETED.value,
                updated_at=_utc_now(),
            )
        )
        return self._count(CourseModel)

    def next_section_order_index(self, course_id: str) -> int:
        current = self._session.execute(
            select(func.max(SectionModel.order_index)).where(SectionModel.course_id == course_id)
        ).scalar_one()
        return 0 if current is None else current + 1

    def create_section(self, course_id: str, name: str) -> str:
        section = SectionModel(
            id=_new_id(),
            course_id=course_id,
            name=name,
            order_index=self.next_section_order_index(course_id),
        )
        self._session.add(section)
        self._session.flush()
        return section.id

    def find_lesson_by_file_path(self, file_path: str) -> LessonRecord | None:
        lesson = self._session.execute(
            select(LessonModel).where(LessonModel.file_path == file_path)
        ).scalar_one_or_none()
        if lesson is None:
            return None
        return _to_lesson_record(lesson)

    def next_lesson_order_index(self, section_id: str) -> int:
        current = self._session.execute(
            select(func.max(LessonModel.order_index)).where(LessonModel.section_id == section_id)
        ).scalar_one()
        return 0 if current is None else current + 1

    def create_lesson(
        self,
        *,
        section_id: str,
        name: str,
        file_path: str,
        file_size: int,
    ) -> str:
        lesson = LessonModel(
            id=_new_id(),
            section_id=section_id,
            name=name,
            file_path=file_path,
            file_size=file_size,
            duration_seconds=0.0,
            thumbnail_path=None,
            order_index=self.next_lesson_order_index(section_id),
        )
        self._session.add(lesson)
        self._session.flush()
        return lesson.id

    def update_lesson_file_size(self, lesson_id: str, file_size: int) -> None:
        lesson = self._require_lesson(lesson_id)
        lesson.file_size = file_size
        self._session.flush()

    def update_lesson_media(
        self,
        lesson_id: str,
        *,
        duration_seconds: float,
        thumbnail_path: str | None,
    ) -> None:
        lesson = self._require_lesson(lesson_id)
        lesson.duration_seconds = duration_seconds
        if thumbnail_path is not None:
            lesson.thumbnail_path = thumbnail_path
        self._session.flush()

    def get_course_by_slug(self, slug: str) -> CourseRecord | None:
        course = self._session.execute(
            select(CourseModel).where(CourseModel.slug == slug)
        ).scalar_one_or_none()
        if course is None:
            return None
        return _to_course_record(course)

    def list_courses(self) -> list[CourseRecord]:
        courses = self._session.execute(
            select(CourseModel).order_by(CourseModel.name.asc())
        ).scalars()
        return [_to_course_record(course) for course in courses]

    def counts(self) -> CatalogCounts:
        return CatalogCounts(
            topics_count=self._count(TopicModel),
            instructors_count=self._count(InstructorModel),
            courses_count=self._count(CourseModel),
            sections_count=self._count(SectionModel),
            lessons_count=self._count(LessonModel),
        )

    def _count(self, model: type[object]) -> int:
        return int(self._session.execute(select(func.count()).select_from(model)).scalar_one())

    def _require_lesson(self, lesson_id: str) -> LessonModel:
        lesson = self._session.get(LessonModel, lesson_id)
        if lesson is None:
            raise LookupError(f"Lesson not found: {lesson_id}")
        return lesson


def _to_course_record(course: CourseModel) -> CourseRecord:
    return CourseRecord(
        id=course.id,
        name=course.name,
        slug=course.slug,
        topic_id=course.topic_id,
        instructor_id=course.instructor_id,
        state=CourseState(course.state),
    )


def _to_lesson_record(lesson: LessonModel) -> LessonRecord:
    return LessonRecord(
        id=lesson.id,
        section_id=lesson.section_id,
        name=lesson.name,
        file_path=lesson.file_path,
        file_size=lesson.file_size,
        duration_seconds=lesson.duration_seconds,
        thumbnail_path=lesson.thumbnail_path,
        order_index=lesson.order_index,
    )


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


def _new_id() -> str:
    return str(uuid4())
