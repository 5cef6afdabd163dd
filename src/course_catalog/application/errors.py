"""Exceptions raised by catalog components."""

from __future__ import annotations


class CatalogError(RuntimeError):
    """Base error for catalog scanning and import."""


class CatalogConfigurationError(CatalogError):
    """Raised when settings are missing or invalid."""


class ScanRootError(CatalogError):
    """Raised when the catalog root cannot be traversed at all."""


class HashCacheError(CatalogError):
    """Raised when the hash cache cannot be persisted."""


class MediaProbeError(CatalogError):
    """Raised by external media tool invocations; never escapes the prober."""


class ImportRunInProgressError(CatalogError):
    """Raised when an import run starts while another one holds the lock."""
