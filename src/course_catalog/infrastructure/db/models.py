"""SQLAlchemy models for the video course catalog."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import BigInteger, DateTime, Float, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from course_catalog.infrastructure.db.base import Base


class TopicModel(Base):
    """Top-level subject grouping, unique by slug."""

    __tablename__ = "topics"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)

    courses: Mapped[list[CourseModel]] = relationship(back_populates="topic")


class InstructorModel(Base):
    """Course author, unique by slug."""

    __tablename__ = "instructors"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)

    courses: Mapped[list[CourseModel]] = relationship(back_populates="instructor")


class CourseModel(Base):
    """Course row; ``state`` carries the soft-delete lifecycle."""

    __tablename__ = "courses"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    topic_id: Mapped[str] = mapped_column(ForeignKey("topics.id"), nullable=False, index=True)
    instructor_id: Mapped[str] = mapped_column(
        ForeignKey("instructors.id"),
        nullable=False,
        index=True,
    )
    state: Mapped[str] = mapped_column(String(16), nullable=False, index=True)
    avg_rating: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    ratings_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    topic: Mapped[TopicModel] = relationship(back_populates="courses")
    instructor: Mapped[InstructorModel] = relationship(back_populates="courses")
    sections: Mapped[list[SectionModel]] = relationship(back_populates="course")


class SectionModel(Base):
    """Ordered section within a course."""

    __tablename__ = "sections"
    __table_args__ = (
        UniqueConstraint("course_id", "order_index", name="uq_sections_course_order"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    course_id: Mapped[str] = mapped_column(ForeignKey("courses.id"), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    order_index: Mapped[int] = mapped_column(Integer, nullable=False)

    course: Mapped[CourseModel] = relationship(back_populates="sections")
    lessons: Mapped[list[LessonModel]] = relationship(back_populates="section")


class LessonModel(Base):
    """Video lesson identified by its catalog-relative file path."""

    __tablename__ = "lessons"
    __table_args__ = (
        UniqueConstraint("section_id", "order_index", name="uq_lessons_section_order"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    section_id: Mapped[str] = mapped_column(ForeignKey("sections.id"), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    file_path: Mapped[str] = mapped_column(String(1024), nullable=False, unique=True)
    file_size: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    duration_seconds: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    thumbnail_path: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    order_index: Mapped[int] = mapped_column(Integer, nullable=False)

    section: Mapped[SectionModel] = relationship(back_populates="lessons")
