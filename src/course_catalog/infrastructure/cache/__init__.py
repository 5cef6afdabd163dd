"""Hash cache infrastructure package."""

from course_catalog.infrastructure.cache.hash_cache import (
    HASH_CACHE_FILENAME,
    HashCache,
    find_duplicates,
)
from course_catalog.infrastructure.cache.hasher import ContentHasher

__all__ = ["HASH_CACHE_FILENAME", "ContentHasher", "HashCache", "find_duplicates"]
