"""ffprobe/ffmpeg backed media prober and thumbnail generator."""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
from collections.abc import Sequence
from pathlib import Path

from pydantic import ValidationError

from course_catalog.application.errors import MediaProbeError
from course_catalog.domain.catalog import MediaToolInfo, ProbeResult, Thumbnail
from course_catalog.infrastructure.cache.hasher import ContentHasher
from course_catalog.infrastructure.media.ffprobe_schema import FfprobeOutput

LOGGER = logging.getLogger(__name__)

THUMBNAILS_DIRNAME = "thumbs"
THUMBNAIL_FILTER = "scale=320:180:force_original_aspect_ratio=decrease"
FALLBACK_NOTE = "ffmpeg unavailable, limited information"

FFMPEG_CANDIDATES = (
    "ffmpeg",
    r"C:\ffmpeg\bin\ffmpeg.exe",
    "/usr/bin/ffmpeg",
    "/usr/local/bin/ffmpeg",
)
FFPROBE_CANDIDATES = (
    "ffprobe",
    r"C:\ffmpeg\bin\ffprobe.exe",
    "/usr/bin/ffprobe",
    "/usr/local/bin/ffprobe",
)


def find_executable(explicit: str | None, candidates: Sequence[str]) -> str | None:
    """Resolve an executable from an explicit setting, then known locations."""
    for candidate in ([explicit] if explicit else []) + list(candidates):
        resolved = shutil.which(candidate)
        if resolved:
            return resolved
        path = Path(candidate)
        if path.is_absolute() and path.is_file() and os.access(path, os.X_OK):
            return str(path)
    return None


class FfmpegMediaProber:
    """Probe media files and render preview frames with external ffmpeg tools.

    Public methods never raise for per-file problems: a missing tool, non-zero
    exit, timeout or malformed JSON all degrade to a fallback ``ProbeResult``
    with ``success=False`` or to no thumbnail.
    """

    def __init__(
        self,
        cache_dir: Path,
        *,
        use_ffmpeg: bool = True,
        ffprobe_path: str | None = None,
        ffmpeg_path: str | None = None,
        timeout_seconds: float = 30.0,
        hasher: ContentHasher | None = None,
    ) -> None:
        self._cache_dir = cache_dir
        self._use_ffmpeg = use_ffmpeg
        self._timeout_seconds = timeout_seconds
        self._hasher = hasher or ContentHasher()
        self._ffprobe_path = find_executable(ffprobe_path, FFPROBE_CANDIDATES) if use_ffmpeg else None
        self._ffmpeg_path = find_executable(ffmpeg_path, FFMPEG_CANDIDATES) if use_ffmpeg else None
        self._version: str | None = None

        if use_ffmpeg and not self.is_available():
            LOGGER.warning(
                "event=media_tools_missing ffprobe=%s ffmpeg=%s",
                self._ffprobe_path,
                self._ffmpeg_path,
            )

    @property
    def thumbnails_dir(self) -> Path:
        return self._cache_dir / THUMBNAILS_DIRNAME

    def is_available(self) -> bool:
        return self._use_ffmpeg and bool(self._ffprobe_path) and bool(self._ffmpeg_path)

    def probe(self, path: Path) -> ProbeResult:
        """Return duration, bitrate, resolution and codec for one file."""
        if not self._use_ffmpeg or self._ffprobe_path is None:
            return self._fallback(path)

        try:
            payload = self._probe_payload(self._ffprobe_path, path)
        except MediaProbeError as exc:
            LOGGER.warning("event=media_probe_failed path=%s reason=%s", path, exc)
            return self._fallback(path)

        video = payload.first_video_stream()
        return ProbeResult(
            duration=payload.format.duration or 0.0,
            bitrate=payload.format.bit_rate or 0,
            size=payload.format.size or 0,
            width=(video.width or 0) if video else 0,
            height=(video.height or 0) if video else 0,
            codec=(video.codec_name or "unknown") if video else "unknown",
            success=True,
        )

    def generate_thumbnail(
        self,
        path: Path,
        offset_seconds: float = 10.0,
        *,
        content_hash: str | None = None,
    ) -> Path | None:
        """Render one frame to ``thumbs/<hash>.jpg``; an existing file is reused."""
        if not self._use_ffmpeg or self._ffmpeg_path is None:
            return None

        try:
            target = self._thumbnail_stem(path, content_hash).with_suffix(".jpg")
            if target.exists():
                return target
            self._render_frame(self._ffmpeg_path, path, offset_seconds, target)
        except (MediaProbeError, OSError) as exc:
            LOGGER.warning("event=thumbnail_failed path=%s reason=%s", path, exc)
            return None
        return target

    def generate_thumbnails(
        self,
        path: Path,
        count: int = 3,
        *,
        content_hash: str | None = None,
    ) -> list[Thumbnail]:
        """Render ``count`` frames evenly spaced across the clip."""
        if not self._use_ffmpeg or self._ffmpeg_path is None or count < 1:
            return []

        duration = self.probe(path).duration
        if duration <= 0:
            return []

        try:
            stem = self._thumbnail_stem(path, content_hash)
        except OSError as exc:
            LOGGER.warning("event=thumbnail_failed path=%s reason=%s", path, exc)
            return []

        thumbnails: list[Thumbnail] = []
        for index in range(count):
            offset = duration / (count + 1) * (index + 1)
            target = stem.with_name(f"{stem.name}_{index}.jpg")
            try:
                self._render_frame(self._ffmpeg_path, path, offset, target)
            except MediaProbeError as exc:
                LOGGER.warning(
                    "event=thumbnail_failed path=%s index=%s reason=%s",
                    path,
                    index,
                    exc,
                )
                continue
            thumbnails.append(Thumbnail(path=target, time_offset=offset))
        return thumbnails

    def version(self) -> str:
        """First line of ``ffmpeg -version``."""
        if self._version is not None:
            return self._version
        if not self.is_available() or self._ffmpeg_path is None:
            return "unavailable"

        try:
            stdout = self._run([self._ffmpeg_path, "-version"])
        except MediaProbeError:
            return "unknown"

        lines = stdout.strip().splitlines()
        self._version = lines[0] if lines else "unknown"
        return self._version

    def tool_info(self) -> MediaToolInfo:
        return MediaToolInfo(
            use_ffmpeg=self._use_ffmpeg,
            ffmpeg_path=self._ffmpeg_path,
            ffprobe_path=self._ffprobe_path,
            available=self.is_available(),
            version=self.version(),
        )

    def _probe_payload(self, ffprobe: str, path: Path) -> FfprobeOutput:
        stdout = self._run(
            [
                ffprobe,
                "-v",
                "quiet",
                "-print_format",
                "json",
                "-show_format",
                "-show_streams",
                str(path),
            ]
        )
        try:
            return FfprobeOutput.model_validate_json(stdout)
        except ValidationError as exc:
            raise MediaProbeError(
                f"ffprobe output failed validation ({exc.error_count()} errors)"
            ) from exc

    def _thumbnail_stem(self, path: Path, content_hash: str | None) -> Path:
        file_hash = content_hash or self._hasher.hash_file(path).value
        self.thumbnails_dir.mkdir(parents=True, exist_ok=True)
        return self.thumbnails_dir / file_hash

    def _render_frame(self, ffmpeg: str, path: Path, offset_seconds: float, target: Path) -> None:
        self._run(
            [
                ffmpeg,
                "-i",
                str(path),
                "-ss",
                f"{offset_seconds:.2f}",
                "-vframes",
                "1",
                "-vf",
                THUMBNAIL_FILTER,
                "-y",
                str(target),
            ]
        )
        if not target.exists():
            raise MediaProbeError(f"ffmpeg produced no frame at {offset_seconds:.2f}s")

    def _run(self, command: list[str]) -> str:
        tool = Path(command[0]).name
        try:
            completed = subprocess.run(
                command,
                check=False,
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
                timeout=self._timeout_seconds,
            )
        except subprocess.TimeoutExpired as exc:
            raise MediaProbeError(
                f"{tool} timed out after {self._timeout_seconds}s"
            ) from exc
        except OSError as exc:
            raise MediaProbeError(f"{tool} could not be executed: {exc}") from exc

        if completed.returncode != 0:
            stderr = (completed.stderr or "").strip()
            raise MediaProbeError(stderr or f"{tool} exited {completed.returncode}")
        return completed.stdout

    def _fallback(self, path: Path) -> ProbeResult:
        try:
            size = path.stat().st_size
        except OSError:
            size = 0
        return ProbeResult(size=size, success=False, note=FALLBACK_NOTE)
