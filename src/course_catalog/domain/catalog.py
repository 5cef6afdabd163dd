"""Domain records for filesystem catalog scanning and import."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path


class HashMode(StrEnum):
    """How a content digest was produced."""

    CONTENT = "content"
    METADATA = "metadata"


class CourseState(StrEnum):
    """Lifecycle state of a catalog course."""

    ACTIVE = "active"
    DELETED = "deleted"


@dataclass(frozen=True)
class HashDigest:
    """Digest value plus the algorithm path that produced it.

    METADATA digests come from filename + size + mtime when the bytes could
    not be read; two distinct files can collide in that mode.
    """

    value: str
    mode: HashMode = HashMode.CONTENT

    @property
    def degraded(self) -> bool:
        return self.mode is HashMode.METADATA


@dataclass(frozen=True)
class ParsedPath:
    """Directory segments mapped to topic/instructor/course/section/lesson."""

    topic: str | None = None
    instructor: str | None = None
    course: str | None = None
    section: str | None = None
    lesson: str | None = None

    @classmethod
    def from_relative_path(cls, relative_path: str) -> ParsedPath:
        """Map path segments positionally; missing trailing segments stay None."""
        parts = [part for part in relative_path.replace("\\", "/").split("/") if part]
        if not parts:
            return cls()

        padded: list[str | None] = [*parts[:5], *([None] * (5 - min(len(parts), 5)))]
        lesson_name = padded[4]
        return cls(
            topic=padded[0],
            instructor=padded[1],
            course=padded[2],
            section=padded[3],
            lesson=Path(lesson_name).stem if lesson_name else None,
        )

    @property
    def has_course_structure(self) -> bool:
        """Topic, instructor and course are all present."""
        return bool(self.topic and self.instructor and self.course)


@dataclass(frozen=True)
class FileDescriptor:
    """One recognized video file found under the catalog root."""

    absolute_path: Path
    relative_path: str
    filename: str
    extension: str
    size: int
    mtime: int
    digest: HashDigest
    parsed_path: ParsedPath

    @property
    def hash(self) -> str:
        return self.digest.value


@dataclass(frozen=True)
class ScanResult:
    """Scanner output; callers check total_errors instead of catching.

    ``fatal`` is set when the root itself could not be traversed; ``files``
    is then empty and ``errors`` holds the root-level message.
    """

    files: list[FileDescriptor]
    errors: list[str]
    fatal: bool = False

    @property
    def total_files(self) -> int:
        return len(self.files)

    @property
    def total_errors(self) -> int:
        return len(self.errors)


@dataclass(frozen=True)
class ScanStats:
    """Aggregates over the most recent scan."""

    total_files: int
    total_size: int
    total_size_formatted: str
    extensions: dict[str, int]
    topics_count: int
    instructors_count: int
    courses_count: int
    errors_count: int


@dataclass(frozen=True)
class DuplicateGroup:
    """Files sharing one exact content hash."""

    hash: str
    files: list[FileDescriptor]

    @property
    def count(self) -> int:
        return len(self.files)


@dataclass(frozen=True)
class ProbeResult:
    """Technical metadata for one media file."""

    duration: float = 0.0
    bitrate: int = 0
    size: int = 0
    width: int = 0
    height: int = 0
    codec: str = "unknown"
    success: bool = False
    note: str | None = None

    @property
    def resolution(self) -> str:
        if self.width > 0 and self.height > 0:
            return f"{self.width}x{self.height}"
        return "unknown"


@dataclass(frozen=True)
class Thumbnail:
    """Generated preview frame."""

    path: Path
    time_offset: float


@dataclass(frozen=True)
class MediaToolInfo:
    """Discovery state of the external media tools."""

    use_ffmpeg: bool
    ffmpeg_path: str | None
    ffprobe_path: str | None
    available: bool
    version: str


@dataclass(frozen=True)
class HashCacheStats:
    """Size information about the persisted hash cache."""

    total_cached_files: int
    cache_file_size: int
    cache_file_path: Path


@dataclass(frozen=True)
class CourseRecord:
    """Course row as seen by the importer."""

    id: str
    name: str
    slug: str
    topic_id: str
    instructor_id: str
    state: CourseState


@dataclass(frozen=True)
class LessonRecord:
    """Lesson row as seen by the importer."""

    id: str
    section_id: str
    name: str
    file_path: str
    file_size: int
    duration_seconds: float
    thumbnail_path: str | None
    order_index: int


@dataclass(frozen=True)
class CatalogCounts:
    """Row counts per catalog table."""

    topics_count: int
    instructors_count: int
    courses_count: int
    sections_count: int
    lessons_count: int


@dataclass(frozen=True)
class MediaEnrichment:
    """Probe outcome plus optional thumbnail for one lesson file."""

    probe: ProbeResult
    thumbnail_path: Path | None = None
    warnings: list[str] = field(default_factory=list)
