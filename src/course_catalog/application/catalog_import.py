"""Application use-case that synchronizes the catalog store with the filesystem."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from enum import StrEnum
from pathlib import Path
from typing import Protocol
from uuid import uuid4

from course_catalog.application.catalog_store import CatalogRepository, CatalogUnitOfWorkFactory
from course_catalog.application.errors import ImportRunInProgressError, ScanRootError
from course_catalog.domain.catalog import (
    CatalogCounts,
    FileDescriptor,
    HashCacheStats,
    HashDigest,
    MediaEnrichment,
    MediaToolInfo,
    ProbeResult,
    ScanResult,
    ScanStats,
)

LOGGER = logging.getLogger(__name__)

DEFAULT_THUMBNAIL_OFFSET_SECONDS = 10.0


class ScannerPort(Protocol):
    """Produces file descriptors for the catalog root."""

    @property
    def root(self) -> Path:
        """Catalog root directory."""
        ...

    def scan(self) -> ScanResult:
        """Walk the root and return descriptors plus per-item errors."""
        ...

    def scan_stats(self) -> ScanStats:
        """Aggregate the most recent scan."""
        ...


class HashCachePort(Protocol):
    """Persistent path -> content hash mapping used for change detection."""

    def has_changed(self, file_path: Path, digest: HashDigest | None = None) -> bool:
        """Return True when the digest differs from the cached value."""
        ...

    def update_cached_hash(self, file_path: Path, digest: HashDigest) -> None:
        """Store digest for file and flush to disk."""
        ...

    def clean_stale_hashes(self, root: Path) -> int:
        """Drop entries whose files no longer exist under root."""
        ...

    def cache_stats(self) -> HashCacheStats:
        """Return cache size information."""
        ...


class MediaProberPort(Protocol):
    """Optional media inspection collaborator; never raises for per-file failures."""

    def probe(self, file_path: Path) -> ProbeResult:
        """Return technical metadata, or a fallback result with success=False."""
        ...

    def generate_thumbnail(
        self,
        file_path: Path,
        offset_seconds: float = DEFAULT_THUMBNAIL_OFFSET_SECONDS,
        *,
        content_hash: str | None = None,
    ) -> Path | None:
        """Return content-addressed thumbnail path, or None on failure."""
        ...

    def tool_info(self) -> MediaToolInfo:
        """Return discovery state of the external tools."""
        ...


class RunMode(StrEnum):
    """Import run strategies."""

    INCREMENTAL = "incremental"
    REBUILD = "rebuild"


class FileImportStatus(StrEnum):
    """Result of importing one file."""

    IMPORTED = "imported"
    SKIPPED_STRUCTURE = "skipped_structure"
    FAILED = "failed"


@dataclass(frozen=True)
class FileImportOutcome:
    """Per-file import result collected by the batch loop."""

    relative_path: str
    status: FileImportStatus
    lesson_created: bool = False
    lesson_updated: bool = False
    media_processed: bool = False
    error: str | None = None


@dataclass
class ImportStats:
    """Counters accumulated over one import run."""

    files_processed: int = 0
    files_imported: int = 0
    lessons_created: int = 0
    lessons_updated: int = 0
    media_processed: int = 0
    courses_soft_deleted: int = 0
    structure_skipped: int = 0
    hashes_cleaned: int = 0
    errors: int = 0


@dataclass(frozen=True)
class RunResult:
    """Structured outcome of an import run; success is purely errors == 0."""

    mode: RunMode
    run_id: str
    stats: ImportStats
    logs: list[str]
    timestamp: datetime

    @property
    def success(self) -> bool:
        return self.stats.errors == 0


@dataclass(frozen=True)
class SystemInfo:
    """Diagnostic snapshot across scanner, hash cache, prober and store."""

    scanner: ScanStats
    hasher: HashCacheStats
    prober: MediaToolInfo
    database: CatalogCounts


@dataclass
class _RunContext:
    mode: RunMode
    clock: Callable[[], datetime]
    run_id: str = field(default_factory=lambda: str(uuid4()))
    stats: ImportStats = field(default_factory=ImportStats)
    logs: list[str] = field(default_factory=list)

    def log(self, message: str, *, level: int = logging.INFO) -> None:
        self.logs.append(f"[{self.clock().strftime('%H:%M:%S')}] {message}")
        LOGGER.log(
            level,
            "event=catalog_import_log run_id=%s mode=%s message=%s",
            self.run_id,
            self.mode.value,
            message,
        )

    def result(self) -> RunResult:
        return RunResult(
            mode=self.mode,
            run_id=self.run_id,
            stats=replace(self.stats),
            logs=list(self.logs),
            timestamp=self.clock(),
        )


def enrich_media(
    prober: MediaProberPort,
    descriptor: FileDescriptor,
    *,
    thumbnail_offset_seconds: float = DEFAULT_THUMBNAIL_OFFSET_SECONDS,
) -> MediaEnrichment:
    """Probe one lesson file and render its thumbnail when probing succeeded."""
    probe = prober.probe(descriptor.absolute_path)
    if not probe.success:
        return MediaEnrichment(probe=probe)

    offset = thumbnail_offset_seconds
    if 0 < probe.duration < offset * 2:
        offset = probe.duration / 2

    thumbnail_path = prober.generate_thumbnail(
        descriptor.absolute_path,
        offset,
        content_hash=descriptor.hash,
    )
    warnings: list[str] = []
    if thumbnail_path is None:
        warnings.append(f"Thumbnail not generated for {descriptor.relative_path}")
    return MediaEnrichment(probe=probe, thumbnail_path=thumbnail_path, warnings=warnings)


class CatalogImporter:
    """Drive scan -> diff -> hierarchy upsert -> media enrichment -> cache update."""

    def __init__(
        self,
        *,
        scanner: ScannerPort,
        hash_cache: HashCachePort,
        prober: MediaProberPort,
        uow_factory: CatalogUnitOfWorkFactory,
        media_workers: int = 1,
        thumbnail_offset_seconds: float = DEFAULT_THUMBNAIL_OFFSET_SECONDS,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        if media_workers < 1:
            raise ValueError("media_workers must be >= 1")

        self._scanner = scanner
        self._hash_cache = hash_cache
        self._prober = prober
        self._uow_factory = uow_factory
        self._media_workers = media_workers
        self._thumbnail_offset_seconds = thumbnail_offset_seconds
        self._clock = clock or (lambda: datetime.now(tz=UTC))
        self._run_lock = threading.Lock()

    def import_incremental(self) -> RunResult:
        """Import only files whose content hash changed since the last run."""
        return self._execute(RunMode.INCREMENTAL)

    def import_rebuild(self) -> RunResult:
        """Soft-delete all courses, then re-import every scanned file."""
        return self._execute(RunMode.REBUILD)

    def system_info(self) -> SystemInfo:
        """Return diagnostics for status reporting."""
        with self._uow_factory() as uow:
            counts = uow.catalog.counts()

        return SystemInfo(
            scanner=self._scanner.scan_stats(),
            hasher=self._hash_cache.cache_stats(),
            prober=self._prober.tool_info(),
            database=counts,
        )

    def _execute(self, mode: RunMode) -> RunResult:
        run = _RunContext(mode=mode, clock=self._clock)
        LOGGER.info(
            "event=catalog_import_started run_id=%s mode=%s root=%s",
            run.run_id,
            mode.value,
            self._scanner.root,
        )
        try:
            if not self._run_lock.acquire(blocking=False):
                raise ImportRunInProgressError("Another import run is already in progress.")
            try:
                self._run(run)
            finally:
                self._run_lock.release()
        except ScanRootError as exc:
            run.log(f"Scan aborted: {exc}", level=logging.ERROR)
            run.stats.errors += 1
        except ImportRunInProgressError as exc:
            run.log(str(exc), level=logging.WARNING)
            run.stats.errors += 1
        except Exception as exc:
            LOGGER.exception(
                "event=catalog_import_failed run_id=%s mode=%s error_type=%s",
                run.run_id,
                mode.value,
                exc.__class__.__name__,
            )
            run.log(f"Error during {mode.value} import: {exc}", level=logging.ERROR)
            run.stats.errors += 1

        result = run.result()
        LOGGER.info(
            (
                "event=catalog_import_completed run_id=%s mode=%s success=%s "
                "files_processed=%s files_imported=%s lessons_created=%s lessons_updated=%s "
                "media_processed=%s courses_soft_deleted=%s errors=%s"
            ),
            result.run_id,
            mode.value,
            result.success,
            result.stats.files_processed,
            result.stats.files_imported,
            result.stats.lessons_created,
            result.stats.lessons_updated,
            result.stats.media_processed,
            result.stats.courses_soft_deleted,
            result.stats.errors,
        )
        return result

    def _run(self, run: _RunContext) -> None:
        if run.mode is RunMode.REBUILD:
            run.log("Starting full rebuild")
            self._soft_delete_all_courses(run)
        else:
            run.log("Starting incremental import")

        scan = self._scanner.scan()
        if scan.fatal:
            raise ScanRootError("; ".join(scan.errors) or "catalog root is not readable")

        run.log(f"Scanned {scan.total_files} files")
        for error in scan.errors:
            run.log(f"Scan error: {error}", level=logging.WARNING)
        run.stats.errors += scan.total_errors

        if run.mode is RunMode.REBUILD:
            pending = list(scan.files)
        else:
            pending = [
                descriptor
                for descriptor in scan.files
                if self._hash_cache.has_changed(descriptor.absolute_path, descriptor.digest)
            ]
            run.log(f"{scan.total_files} files scanned, {len(pending)} changed")

        if not scan.files:
            run.log("No files found to import")
        elif not pending:
            run.log("No changed files to import")
        else:
            self._import_files(pending, run)

        cleaned = self._hash_cache.clean_stale_hashes(self._scanner.root)
        run.stats.hashes_cleaned = cleaned
        if cleaned > 0:
            run.log(f"Removed {cleaned} stale hash entries")

        run.log(f"{run.mode.value.capitalize()} import finished")

    def _soft_delete_all_courses(self, run: _RunContext) -> None:
        with self._uow_factory() as uow:
            deleted = uow.catalog.soft_delete_all_courses()
            uow.commit()

        run.stats.courses_soft_deleted = deleted
        run.log(f"Marked {deleted} existing courses as deleted")

    def _import_files(self, files: list[FileDescriptor], run: _RunContext) -> None:
        total = len(files)
        with ThreadPoolExecutor(
            max_workers=self._media_workers,
            thread_name_prefix="catalog-media",
        ) as executor:
            enrichments: list[Future[MediaEnrichment] | None] = [
                executor.submit(
                    enrich_media,
                    self._prober,
                    descriptor,
                    thumbnail_offset_seconds=self._thumbnail_offset_seconds,
                )
                if _needs_lesson(descriptor)
                else None
                for descriptor in files
            ]

            for index, (descriptor, enrichment) in enumerate(zip(files, enrichments), start=1):
                run.stats.files_processed += 1
                run.log(f"Processing file {index}/{total}: {descriptor.relative_path}")
                outcome = self._import_file(descriptor, enrichment, run)
                self._record_outcome(outcome, run)

    def _import_file(
        self,
        descriptor: FileDescriptor,
        enrichment: Future[MediaEnrichment] | None,
        run: _RunContext,
    ) -> FileImportOutcome:
        try:
            with self._uow_factory() as uow:
                outcome = self._apply_file(uow.catalog, descriptor, enrichment, run)
                uow.commit()

            self._hash_cache.update_cached_hash(descriptor.absolute_path, descriptor.digest)
        except Exception as exc:
            LOGGER.exception(
                "event=catalog_file_import_failed run_id=%s relative_path=%s error_type=%s",
                run.run_id,
                descriptor.relative_path,
                exc.__class__.__name__,
            )
            return FileImportOutcome(
                relative_path=descriptor.relative_path,
                status=FileImportStatus.FAILED,
                error=str(exc) or exc.__class__.__name__,
            )

        return outcome

    def _apply_file(
        self,
        catalog: CatalogRepository,
        descriptor: FileDescriptor,
        enrichment: Future[MediaEnrichment] | None,
        run: _RunContext,
    ) -> FileImportOutcome:
        parsed = descriptor.parsed_path
        topic, instructor, course = parsed.topic, parsed.instructor, parsed.course
        if not (topic and instructor and course):
            run.log(
                f"Invalid directory structure for: {descriptor.relative_path}",
                level=logging.WARNING,
            )
            return FileImportOutcome(
                relative_path=descriptor.relative_path,
                status=FileImportStatus.SKIPPED_STRUCTURE,
            )

        topic_id = catalog.get_or_create_topic(topic)
        instructor_id = catalog.get_or_create_instructor(instructor)
        course_id = catalog.upsert_course(course, topic_id, instructor_id)

        # A new section row per file, even when the name already exists in the course.
        section_id = catalog.create_section(course_id, parsed.section) if parsed.section else None
        if not parsed.lesson or section_id is None:
            return FileImportOutcome(
                relative_path=descriptor.relative_path,
                status=FileImportStatus.IMPORTED,
            )

        existing = catalog.find_lesson_by_file_path(descriptor.relative_path)
        if existing is not None:
            catalog.update_lesson_file_size(existing.id, descriptor.size)
            lesson_id = existing.id
        else:
            lesson_id = catalog.create_lesson(
                section_id=section_id,
                name=parsed.lesson,
                file_path=descriptor.relative_path,
                file_size=descriptor.size,
            )

        media_processed = self._apply_media(catalog, lesson_id, enrichment, run)
        return FileImportOutcome(
            relative_path=descriptor.relative_path,
            status=FileImportStatus.IMPORTED,
            lesson_created=existing is None,
            lesson_updated=existing is not None,
            media_processed=media_processed,
        )

    def _apply_media(
        self,
        catalog: CatalogRepository,
        lesson_id: str,
        enrichment: Future[MediaEnrichment] | None,
        run: _RunContext,
    ) -> bool:
        if enrichment is None:
            return False

        try:
            result = enrichment.result()
            for warning in result.warnings:
                run.log(warning, level=logging.WARNING)
            if not result.probe.success:
                return False

            catalog.update_lesson_media(
                lesson_id,
                duration_seconds=result.probe.duration,
                thumbnail_path=str(result.thumbnail_path) if result.thumbnail_path else None,
            )
        except Exception as exc:
            LOGGER.warning(
                "event=catalog_media_failed run_id=%s lesson_id=%s error_type=%s",
                run.run_id,
                lesson_id,
                exc.__class__.__name__,
            )
            run.log(
                f"Media processing failed for lesson {lesson_id}: {exc}",
                level=logging.WARNING,
            )
            return False

        return True

    def _record_outcome(self, outcome: FileImportOutcome, run: _RunContext) -> None:
        stats = run.stats
        if outcome.status is FileImportStatus.FAILED:
            stats.errors += 1
            run.log(
                f"Error processing {outcome.relative_path}: {outcome.error}",
                level=logging.ERROR,
            )
            return

        if outcome.status is FileImportStatus.SKIPPED_STRUCTURE:
            stats.structure_skipped += 1
            return

        stats.files_imported += 1
        stats.lessons_created += int(outcome.lesson_created)
        stats.lessons_updated += int(outcome.lesson_updated)
        stats.media_processed += int(outcome.media_processed)


def _needs_lesson(descriptor: FileDescriptor) -> bool:
    parsed = descriptor.parsed_path
    return parsed.has_course_structure and bool(parsed.section) and bool(parsed.lesson)
