"""Content hashing for change detection."""

from __future__ import annotations

import logging
from pathlib import Path

import xxhash

from course_catalog.domain.catalog import HashDigest, HashMode

LOGGER = logging.getLogger(__name__)

READ_CHUNK_SIZE = 1024 * 1024


class ContentHasher:
    """Hash file bytes with xxh3; fall back to name+size+mtime when unreadable."""

    def __init__(self, chunk_size: int = READ_CHUNK_SIZE) -> None:
        if chunk_size < 1:
            raise ValueError("chunk_size must be >= 1")
        self._chunk_size = chunk_size

    def hash_file(self, file_path: Path) -> HashDigest:
        """Return content digest, or a METADATA digest when bytes cannot be read."""
        digest = xxhash.xxh3_64()
        try:
            with file_path.open("rb") as handle:
                for chunk in iter(lambda: handle.read(self._chunk_size), b""):
                    digest.update(chunk)
        except OSError as exc:
            LOGGER.warning(
                "event=content_hash_degraded path=%s error_type=%s",
                file_path,
                exc.__class__.__name__,
            )
            return self.metadata_hash(file_path)

        return HashDigest(value=digest.hexdigest(), mode=HashMode.CONTENT)

    def metadata_hash(self, file_path: Path) -> HashDigest:
        """Hash filename + size + mtime. Raises OSError when the file cannot be stat'ed."""
        stat = file_path.stat()
        payload = f"{file_path.name}{stat.st_size}{int(stat.st_mtime)}"
        return HashDigest(
            value=xxhash.xxh3_64_hexdigest(payload.encode("utf-8")),
            mode=HashMode.METADATA,
        )
