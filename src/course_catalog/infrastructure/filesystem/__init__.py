"""Filesystem scanning infrastructure package."""

from course_catalog.infrastructure.filesystem.scanner import VIDEO_EXTENSIONS, FilesystemScanner

__all__ = ["VIDEO_EXTENSIONS", "FilesystemScanner"]
