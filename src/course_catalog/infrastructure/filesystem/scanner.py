"""Recursive catalog root scanner producing file descriptors."""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path

from course_catalog.application.text_format import format_bytes
from course_catalog.domain.catalog import FileDescriptor, ParsedPath, ScanResult, ScanStats
from course_catalog.infrastructure.cache.hasher import ContentHasher

LOGGER = logging.getLogger(__name__)

VIDEO_EXTENSIONS = frozenset({"mp4", "mkv", "webm", "mov"})


class FilesystemScanner:
    """Walk the catalog root and describe every recognized video file.

    Symlinked directories are not followed. Unreadable subdirectories and
    files are reported in ``ScanResult.errors`` and skipped.
    """

    def __init__(
        self,
        root: Path,
        *,
        hasher: ContentHasher | None = None,
        extensions: Iterable[str] = VIDEO_EXTENSIONS,
        hash_workers: int = 1,
    ) -> None:
        if hash_workers < 1:
            raise ValueError("hash_workers must be >= 1")

        self._root = root
        self._hasher = hasher or ContentHasher()
        self._extensions = frozenset(ext.lower().lstrip(".") for ext in extensions)
        self._hash_workers = hash_workers
        self._last_result = ScanResult(files=[], errors=[])

    @property
    def root(self) -> Path:
        return self._root

    @property
    def last_result(self) -> ScanResult:
        return self._last_result

    def scan(self) -> ScanResult:
        """Scan the root; never raises for filesystem problems."""
        try:
            with os.scandir(self._root):
                pass
        except OSError as exc:
            LOGGER.error(
                "event=scan_root_unreadable root=%s error_type=%s",
                self._root,
                exc.__class__.__name__,
            )
            self._last_result = ScanResult(
                files=[],
                errors=[f"Catalog root is not readable: {self._root} ({exc.strerror or exc})"],
                fatal=True,
            )
            return self._last_result

        errors: list[str] = []
        candidates = self._collect_candidates(errors)
        files = self._describe_all(candidates, errors)

        self._last_result = ScanResult(files=files, errors=errors)
        LOGGER.info(
            "event=scan_completed root=%s total_files=%s total_errors=%s",
            self._root,
            self._last_result.total_files,
            self._last_result.total_errors,
        )
        return self._last_result

    def is_video_file(self, path: Path) -> bool:
        return path.suffix.lower().lstrip(".") in self._extensions

    def files_by_topic(self, topic: str) -> list[FileDescriptor]:
        return [f for f in self._last_result.files if f.parsed_path.topic == topic]

    def files_by_instructor(self, instructor: str) -> list[FileDescriptor]:
        return [f for f in self._last_result.files if f.parsed_path.instructor == instructor]

    def files_by_course(self, course: str) -> list[FileDescriptor]:
        return [f for f in self._last_result.files if f.parsed_path.course == course]

    def modified_since(self, since_timestamp: int) -> list[FileDescriptor]:
        return [f for f in self._last_result.files if f.mtime > since_timestamp]

    def larger_than(self, min_size: int) -> list[FileDescriptor]:
        return [f for f in self._last_result.files if f.size > min_size]

    def scan_stats(self) -> ScanStats:
        """Aggregate the last scan without touching the filesystem."""
        files = self._last_result.files
        extensions: dict[str, int] = {}
        topics: set[str] = set()
        instructors: set[str] = set()
        courses: set[str] = set()
        total_size = 0

        for descriptor in files:
            total_size += descriptor.size
            extensions[descriptor.extension] = extensions.get(descriptor.extension, 0) + 1
            parsed = descriptor.parsed_path
            if parsed.topic:
                topics.add(parsed.topic)
            if parsed.instructor:
                instructors.add(parsed.instructor)
            if parsed.course:
                courses.add(parsed.course)

        return ScanStats(
            total_files=len(files),
            total_size=total_size,
            total_size_formatted=format_bytes(total_size),
            extensions=extensions,
            topics_count=len(topics),
            instructors_count=len(instructors),
            courses_count=len(courses),
            errors_count=self._last_result.total_errors,
        )

    def _collect_candidates(self, errors: list[str]) -> list[tuple[Path, str]]:
        def on_error(exc: OSError) -> None:
            errors.append(f"Cannot read directory: {exc.filename} ({exc.strerror or exc})")
            LOGGER.warning("event=scan_directory_unreadable path=%s", exc.filename)

        candidates: list[tuple[Path, str]] = []
        for current_root, dirs, filenames in os.walk(self._root, onerror=on_error):
            dirs.sort()
            current = Path(current_root)
            for filename in sorted(filenames):
                candidate = current / filename
                if not self.is_video_file(candidate) or not candidate.is_file():
                    continue
                relative_path = candidate.relative_to(self._root).as_posix()
                candidates.append((candidate, relative_path))
        return candidates

    def _describe_all(
        self,
        candidates: list[tuple[Path, str]],
        errors: list[str],
    ) -> list[FileDescriptor]:
        files: list[FileDescriptor] = []
        with ThreadPoolExecutor(
            max_workers=self._hash_workers,
            thread_name_prefix="catalog-hash",
        ) as executor:
            futures: list[tuple[str, Future[FileDescriptor]]] = [
                (relative_path, executor.submit(self._describe, path, relative_path))
                for path, relative_path in candidates
            ]
            for relative_path, future in futures:
                try:
                    files.append(future.result())
                except OSError as exc:
                    errors.append(f"Cannot process file {relative_path}: {exc.strerror or exc}")
                    LOGGER.warning(
                        "event=scan_file_failed relative_path=%s error_type=%s",
                        relative_path,
                        exc.__class__.__name__,
                    )
        return files

    def _describe(self, path: Path, relative_path: str) -> FileDescriptor:
        stat = path.stat()
        return FileDescriptor(
            absolute_path=path,
            relative_path=relative_path,
            filename=path.name,
            extension=path.suffix.lower().lstrip("."),
            size=stat.st_size,
            mtime=int(stat.st_mtime),
            digest=self._hasher.hash_file(path),
            parsed_path=ParsedPath.from_relative_path(relative_path),
        )
