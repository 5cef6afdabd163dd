"""Use-case tests for incremental and rebuild catalog imports."""

from __future__ import annotations

import os
from collections.abc import Iterator
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from types import TracebackType
from typing import Any

import pytest
from sqlalchemy.orm import Session, sessionmaker

from course_catalog.application.catalog_import import (
    CatalogImporter,
    RunMode,
    enrich_media,
)
from course_catalog.application.catalog_store import CatalogRepository, CatalogUnitOfWork
from course_catalog.domain.catalog import (
    CourseState,
    FileDescriptor,
    ProbeResult,
    ScanResult,
)
from course_catalog.infrastructure.cache import HashCache, find_duplicates
from course_catalog.infrastructure.db.catalog_unit_of_work import SqlAlchemyCatalogUnitOfWork
from course_catalog.infrastructure.filesystem import FilesystemScanner
from tests.catalog_fixture_utils import (
    ScriptedMediaProber,
    create_catalog_store,
    unavailable_prober,
    write_video,
)


class FailingCatalog:
    """Repository wrapper that raises when creating one named lesson."""

    def __init__(self, inner: CatalogRepository, failing_lesson: str) -> None:
        self._inner = inner
        self._failing_lesson = failing_lesson

    def create_lesson(self, *, section_id: str, name: str, file_path: str, file_size: int) -> str:
        if name == self._failing_lesson:
            raise RuntimeError(f"cannot store {name}")
        return self._inner.create_lesson(
            section_id=section_id,
            name=name,
            file_path=file_path,
            file_size=file_size,
        )

    def __getattr__(self, name: str) -> Any:
        return getattr(self._inner, name)


class FailingUnitOfWork:
    """Unit of work whose repository rejects one lesson name."""

    def __init__(self, inner: SqlAlchemyCatalogUnitOfWork, failing_lesson: str) -> None:
        self._inner = inner
        self._failing_lesson = failing_lesson
        self.catalog: CatalogRepository = inner.catalog

    def __enter__(self) -> FailingUnitOfWork:
        self._inner.__enter__()
        self.catalog = FailingCatalog(self._inner.catalog, self._failing_lesson)  # type: ignore[assignment]
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        self._inner.__exit__(exc_type, exc, traceback)

    def commit(self) -> None:
        self._inner.commit()

    def rollback(self) -> None:
        self._inner.rollback()


@dataclass
class CatalogWorkspace:
    root: Path
    cache_dir: Path
    session_factory: sessionmaker[Session]

    def importer(
        self,
        prober: ScriptedMediaProber | None = None,
        *,
        uow_factory: Any = None,
        scanner: Any = None,
    ) -> CatalogImporter:
        return CatalogImporter(
            scanner=scanner or FilesystemScanner(self.root, hash_workers=2),
            hash_cache=HashCache(self.cache_dir, catalog_root=self.root),
            prober=prober or ScriptedMediaProber(),
            uow_factory=uow_factory or self.uow,
            media_workers=2,
            clock=lambda: datetime(2026, 1, 5, 9, 30, 15, tzinfo=UTC),
        )

    def uow(self) -> CatalogUnitOfWork:
        return SqlAlchemyCatalogUnitOfWork(self.session_factory)


@pytest.fixture
def workspace(tmp_path: Path) -> Iterator[CatalogWorkspace]:
    session_factory, engine = create_catalog_store(tmp_path / "catalog.db")
    root = tmp_path / "uploads"
    root.mkdir()
    try:
        yield CatalogWorkspace(
            root=root,
            cache_dir=tmp_path / "cache",
            session_factory=session_factory,
        )
    finally:
        engine.dispose()


def test_incremental_import_creates_hierarchy_and_lessons(workspace: CatalogWorkspace) -> None:
    write_video(workspace.root, "Dev/Ann/Python/01 Intro/01 Welcome.mp4", b"welcome")
    write_video(workspace.root, "Dev/Ann/Python/02 Loops/01 For.mp4", b"for")
    prober = ScriptedMediaProber(thumbnail_dir=workspace.cache_dir / "thumbs")

    result = workspace.importer(prober).import_incremental()

    assert result.mode is RunMode.INCREMENTAL
    assert result.success is True
    assert result.stats.files_processed == 2
    assert result.stats.files_imported == 2
    assert result.stats.lessons_created == 2
    assert result.stats.lessons_updated == 0
    assert result.stats.media_processed == 2
    assert result.stats.errors == 0
    assert all(line.startswith("[09:30:15] ") for line in result.logs)

    with workspace.uow() as uow:
        counts = uow.catalog.counts()
        lesson = uow.catalog.find_lesson_by_file_path("Dev/Ann/Python/01 Intro/01 Welcome.mp4")
        course = uow.catalog.get_course_by_slug("python")

    assert (counts.topics_count, counts.instructors_count, counts.courses_count) == (1, 1, 1)
    assert counts.sections_count == 2
    assert counts.lessons_count == 2
    assert course is not None and course.state is CourseState.ACTIVE
    assert lesson is not None
    assert lesson.name == "01 Welcome"
    assert lesson.file_size == len(b"welcome")
    assert lesson.duration_seconds == 120.0
    assert lesson.thumbnail_path is not None and lesson.thumbnail_path.endswith(".jpg")


def test_second_incremental_run_without_changes_imports_nothing(
    workspace: CatalogWorkspace,
) -> None:
    write_video(workspace.root, "Dev/Ann/Python/Intro/Welcome.mp4", b"welcome")
    workspace.importer().import_incremental()
    with workspace.uow() as uow:
        before = uow.catalog.counts()

    second = workspace.importer().import_incremental()

    with workspace.uow() as uow:
        after = uow.catalog.counts()
    assert second.success is True
    assert second.stats.files_imported == 0
    assert second.stats.files_processed == 0
    assert any("No changed files to import" in line for line in second.logs)
    assert after == before


def test_touching_mtime_does_not_mark_file_changed(workspace: CatalogWorkspace) -> None:
    video = write_video(workspace.root, "Dev/Ann/Python/Intro/Welcome.mp4", b"welcome")
    workspace.importer().import_incremental()

    os.utime(video, (2_000_000_000, 2_000_000_000))
    result = workspace.importer().import_incremental()

    assert result.stats.files_imported == 0


def test_changed_content_updates_existing_lesson_in_place(workspace: CatalogWorkspace) -> None:
    video = write_video(workspace.root, "Dev/Ann/Python/Intro/Welcome.mp4", b"v1")
    workspace.importer().import_incremental()

    video.write_bytes(b"version two")
    result = workspace.importer().import_incremental()

    assert result.stats.files_imported == 1
    assert result.stats.lessons_created == 0
    assert result.stats.lessons_updated == 1
    with workspace.uow() as uow:
        lesson = uow.catalog.find_lesson_by_file_path("Dev/Ann/Python/Intro/Welcome.mp4")
        counts = uow.catalog.counts()
    assert lesson is not None and lesson.file_size == len(b"version two")
    assert counts.lessons_count == 1
    # Re-importing the file appends another "Intro" section row.
    assert counts.sections_count == 2


def test_shallow_files_are_skipped_without_errors(workspace: CatalogWorkspace) -> None:
    write_video(workspace.root, "Dev/loose.mp4", b"loose")
    write_video(workspace.root, "Dev/Ann/Python/Intro/Welcome.mp4", b"welcome")

    result = workspace.importer().import_incremental()

    assert result.success is True
    assert result.stats.files_processed == 2
    assert result.stats.files_imported == 1
    assert result.stats.structure_skipped == 1
    assert result.stats.errors == 0
    assert any("Invalid directory structure for: Dev/loose.mp4" in line for line in result.logs)


def test_course_level_file_creates_course_without_lesson(workspace: CatalogWorkspace) -> None:
    write_video(workspace.root, "Dev/Ann/Python/trailer.mp4", b"trailer")
    prober = ScriptedMediaProber()

    result = workspace.importer(prober).import_incremental()

    assert result.stats.files_imported == 1
    assert result.stats.lessons_created == 0
    assert prober.probed == []
    with workspace.uow() as uow:
        counts = uow.catalog.counts()
    assert counts.courses_count == 1
    assert counts.sections_count == 1
    assert counts.lessons_count == 0


def test_rebuild_soft_deletes_courses_whose_directories_vanished(
    workspace: CatalogWorkspace,
) -> None:
    write_video(workspace.root, "Dev/Ann/CourseA/Intro/One.mp4", b"a")
    b_video = write_video(workspace.root, "Dev/Ann/CourseB/Intro/One.mp4", b"b")
    workspace.importer().import_incremental()

    b_video.unlink()
    b_video.parent.rmdir()
    b_video.parent.parent.rmdir()
    result = workspace.importer().import_rebuild()

    assert result.mode is RunMode.REBUILD
    assert result.success is True
    assert result.stats.courses_soft_deleted == 2
    assert result.stats.files_imported == 1
    assert result.stats.hashes_cleaned == 1
    with workspace.uow() as uow:
        course_a = uow.catalog.get_course_by_slug("coursea")
        course_b = uow.catalog.get_course_by_slug("courseb")
    assert course_a is not None and course_a.state is CourseState.ACTIVE
    assert course_b is not None and course_b.state is CourseState.DELETED


def test_rebuild_reprocesses_unchanged_files(workspace: CatalogWorkspace) -> None:
    write_video(workspace.root, "Dev/Ann/Python/Intro/Welcome.mp4", b"welcome")
    workspace.importer().import_incremental()

    result = workspace.importer().import_rebuild()

    assert result.stats.files_imported == 1
    assert result.stats.lessons_updated == 1


def test_rebuild_with_vanished_root_leaves_every_course_deleted(
    workspace: CatalogWorkspace,
    tmp_path: Path,
) -> None:
    write_video(workspace.root, "Dev/Ann/Python/Intro/Welcome.mp4", b"welcome")
    workspace.importer().import_incremental()
    missing = CatalogWorkspace(
        root=tmp_path / "missing",
        cache_dir=workspace.cache_dir,
        session_factory=workspace.session_factory,
    )

    result = missing.importer().import_rebuild()

    assert result.success is False
    assert result.stats.errors == 1
    assert result.stats.courses_soft_deleted == 1
    with workspace.uow() as uow:
        course = uow.catalog.get_course_by_slug("python")
    assert course is not None and course.state is CourseState.DELETED


def test_degraded_probing_still_creates_lessons(workspace: CatalogWorkspace) -> None:
    write_video(workspace.root, "Dev/Ann/Python/Intro/One.mp4", b"one")
    write_video(workspace.root, "Dev/Ann/Python/Intro/Two.mp4", b"two")

    result = workspace.importer(unavailable_prober()).import_incremental()

    assert result.success is True
    assert result.stats.lessons_created == 2
    assert result.stats.media_processed == 0
    with workspace.uow() as uow:
        lesson = uow.catalog.find_lesson_by_file_path("Dev/Ann/Python/Intro/One.mp4")
    assert lesson is not None
    assert lesson.duration_seconds == 0.0
    assert lesson.thumbnail_path is None


def test_one_failing_file_does_not_abort_the_batch(workspace: CatalogWorkspace) -> None:
    write_video(workspace.root, "Dev/Ann/Python/Intro/A.mp4", b"a")
    write_video(workspace.root, "Dev/Ann/Python/Intro/Broken.mp4", b"broken")
    write_video(workspace.root, "Dev/Ann/Python/Intro/C.mp4", b"c")
    importer = workspace.importer(
        uow_factory=lambda: FailingUnitOfWork(
            SqlAlchemyCatalogUnitOfWork(workspace.session_factory),
            "Broken",
        )
    )

    result = importer.import_incremental()

    assert result.success is False
    assert result.stats.errors == 1
    assert result.stats.files_processed == 3
    assert result.stats.files_imported == 2
    assert any("Error processing Dev/Ann/Python/Intro/Broken.mp4" in line for line in result.logs)

    retry = workspace.importer().import_incremental()
    assert retry.stats.files_imported == 1
    assert retry.success is True


def test_overlapping_run_returns_failed_result(workspace: CatalogWorkspace) -> None:
    write_video(workspace.root, "Dev/Ann/Python/Intro/Welcome.mp4", b"welcome")
    nested: list[Any] = []

    class ReentrantScanner(FilesystemScanner):
        def scan(self) -> ScanResult:
            if not nested:
                nested.append(importer.import_incremental())
            return super().scan()

    importer = workspace.importer(scanner=ReentrantScanner(workspace.root))

    outer = importer.import_incremental()

    assert outer.success is True
    assert outer.stats.files_imported == 1
    assert nested[0].success is False
    assert nested[0].stats.errors == 1
    assert any("already in progress" in line for line in nested[0].logs)


def test_duplicate_content_is_reported_as_one_group(workspace: CatalogWorkspace) -> None:
    write_video(workspace.root, "Dev/Ann/Python/Intro/One.mp4", b"same bytes")
    write_video(workspace.root, "Art/Bob/Drawing/Intro/Copy.mp4", b"same bytes")
    write_video(workspace.root, "Art/Bob/Drawing/Intro/Other.mp4", b"other")

    groups = find_duplicates(FilesystemScanner(workspace.root).scan().files)

    assert len(groups) == 1
    assert groups[0].count == 2


def test_system_info_combines_component_diagnostics(workspace: CatalogWorkspace) -> None:
    write_video(workspace.root, "Dev/Ann/Python/Intro/Welcome.mp4", b"welcome")
    importer = workspace.importer()
    importer.import_incremental()

    info = importer.system_info()

    assert info.scanner.total_files == 1
    assert info.hasher.total_cached_files == 1
    assert info.prober.version == "scripted"
    assert info.database.lessons_count == 1


def test_enrich_media_clamps_thumbnail_offset_for_short_clips(tmp_path: Path) -> None:
    video = write_video(tmp_path, "clip.mp4", b"clip")
    descriptor = FilesystemScanner(tmp_path).scan().files[0]
    prober = ScriptedMediaProber(
        result=ProbeResult(duration=6.0, success=True),
        thumbnail_dir=tmp_path / "thumbs",
    )

    enrichment = enrich_media(prober, descriptor, thumbnail_offset_seconds=10.0)

    assert isinstance(descriptor, FileDescriptor)
    assert descriptor.absolute_path == video
    assert prober.thumbnail_offsets == [3.0]
    assert enrichment.thumbnail_path == tmp_path / "thumbs" / f"{descriptor.hash}.jpg"
    assert enrichment.warnings == []


def test_enrich_media_warns_when_thumbnail_missing(tmp_path: Path) -> None:
    write_video(tmp_path, "clip.mp4", b"clip")
    descriptor = FilesystemScanner(tmp_path).scan().files[0]

    enrichment = enrich_media(ScriptedMediaProber(), descriptor)

    assert enrichment.probe.success is True
    assert enrichment.thumbnail_path is None
    assert enrichment.warnings == ["Thumbnail not generated for clip.mp4"]
