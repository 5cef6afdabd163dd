"""JSON-backed cache of catalog-relative path -> content hash."""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from pathlib import Path

from course_catalog.application.errors import HashCacheError
from course_catalog.domain.catalog import DuplicateGroup, FileDescriptor, HashCacheStats, HashDigest
from course_catalog.infrastructure.cache.hasher import ContentHasher

LOGGER = logging.getLogger(__name__)

HASH_CACHE_FILENAME = "hash_cache.json"


class HashCache:
    """Own the in-memory hash map plus its durable JSON copy.

    Keys are catalog-relative POSIX paths: the part of an absolute path after
    the catalog root, or after the first segment named like the root when the
    file lives under a different absolute prefix.
    """

    def __init__(
        self,
        cache_dir: Path,
        *,
        catalog_root: Path,
        hasher: ContentHasher | None = None,
    ) -> None:
        self._cache_file = cache_dir / HASH_CACHE_FILENAME
        self._catalog_root = catalog_root
        self._hasher = hasher or ContentHasher()
        self._entries: dict[str, str] = {}
        self.load()

    @property
    def cache_file(self) -> Path:
        return self._cache_file

    @property
    def entries(self) -> dict[str, str]:
        """Return a copy of cached entries."""
        return dict(self._entries)

    def load(self) -> None:
        """Replace in-memory entries with the persisted file; missing file means empty."""
        try:
            raw = self._cache_file.read_text(encoding="utf-8")
        except FileNotFoundError:
            self._entries = {}
            return
        except OSError as exc:
            LOGGER.warning(
                "event=hash_cache_load_failed path=%s error_type=%s",
                self._cache_file,
                exc.__class__.__name__,
            )
            self._entries = {}
            return

        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            LOGGER.warning("event=hash_cache_invalid_json path=%s", self._cache_file)
            self._entries = {}
            return

        if not isinstance(data, dict):
            LOGGER.warning("event=hash_cache_invalid_shape path=%s", self._cache_file)
            self._entries = {}
            return

        self._entries = {
            str(key): value for key, value in data.items() if isinstance(value, str)
        }
        LOGGER.info(
            "event=hash_cache_loaded path=%s entries=%s",
            self._cache_file,
            len(self._entries),
        )

    def flush(self) -> None:
        """Write entries atomically as sorted, indented JSON."""
        try:
            self._cache_file.parent.mkdir(parents=True, exist_ok=True)
            tmp = self._cache_file.with_suffix(self._cache_file.suffix + ".tmp")
            tmp.write_text(
                json.dumps(self._entries, indent=2, sort_keys=True) + "\n",
                encoding="utf-8",
            )
            tmp.replace(self._cache_file)
        except OSError as exc:
            raise HashCacheError(f"Cannot write hash cache {self._cache_file}: {exc}") from exc

    def relative_key(self, file_path: Path) -> str:
        """Return the catalog-relative key for an absolute path."""
        try:
            return file_path.relative_to(self._catalog_root).as_posix()
        except ValueError:
            pass

        parts = file_path.parts
        marker = self._catalog_root.name
        if marker in parts:
            index = parts.index(marker)
            return Path(*parts[index + 1 :]).as_posix() if index + 1 < len(parts) else ""
        return file_path.as_posix()

    def hash_file(self, file_path: Path) -> HashDigest:
        return self._hasher.hash_file(file_path)

    def get_cached_hash(self, file_path: Path) -> str | None:
        return self._entries.get(self.relative_key(file_path))

    def has_changed(self, file_path: Path, digest: HashDigest | None = None) -> bool:
        """Compare current digest with the cached one; absent entries count as changed."""
        current = digest if digest is not None else self._hasher.hash_file(file_path)
        return current.value != self.get_cached_hash(file_path)

    def update_cached_hash(self, file_path: Path, digest: HashDigest) -> None:
        self._entries[self.relative_key(file_path)] = digest.value
        self.flush()

    def clean_stale_hashes(self, root: Path) -> int:
        """Remove entries whose file no longer exists under root."""
        stale = [key for key in self._entries if not (root / key).exists()]
        for key in stale:
            del self._entries[key]

        if stale:
            self.flush()
            LOGGER.info(
                "event=hash_cache_cleaned path=%s removed=%s",
                self._cache_file,
                len(stale),
            )
        return len(stale)

    def cache_stats(self) -> HashCacheStats:
        try:
            size = self._cache_file.stat().st_size
        except OSError:
            size = 0

        return HashCacheStats(
            total_cached_files=len(self._entries),
            cache_file_size=size,
            cache_file_path=self._cache_file,
        )

    def compare_files(self, first: Path, second: Path) -> bool:
        """Return True when both files exist and share one content digest."""
        if not first.exists() or not second.exists():
            return False
        return self._hasher.hash_file(first).value == self._hasher.hash_file(second).value


def find_duplicates(files: Iterable[FileDescriptor]) -> list[DuplicateGroup]:
    """Group descriptors by exact content hash; METADATA digests are never grouped."""
    groups: dict[str, list[FileDescriptor]] = {}
    for descriptor in files:
        if descriptor.digest.degraded:
            continue
        groups.setdefault(descriptor.hash, []).append(descriptor)

    return [
        DuplicateGroup(hash=digest, files=members)
        for digest, members in groups.items()
        if len(members) > 1
    ]
