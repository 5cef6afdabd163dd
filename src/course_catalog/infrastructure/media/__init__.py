"""Media probing infrastructure package."""

from course_catalog.infrastructure.media.prober import FfmpegMediaProber, find_executable

__all__ = ["FfmpegMediaProber", "find_executable"]
