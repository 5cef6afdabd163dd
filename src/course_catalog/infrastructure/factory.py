"""Composition root wiring the default catalog adapters."""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.orm import Session, sessionmaker

from course_catalog.application.catalog_import import CatalogImporter
from course_catalog.infrastructure.cache import ContentHasher, HashCache
from course_catalog.infrastructure.config import CatalogSettings
from course_catalog.infrastructure.db import (
    SqlAlchemyCatalogUnitOfWork,
    create_session_factory,
    create_sqlite_engine,
)
from course_catalog.infrastructure.filesystem import FilesystemScanner
from course_catalog.infrastructure.media import FfmpegMediaProber


@dataclass(frozen=True)
class CatalogServices:
    """Adapters sharing one settings snapshot."""

    settings: CatalogSettings
    scanner: FilesystemScanner
    hash_cache: HashCache
    prober: FfmpegMediaProber
    session_factory: sessionmaker[Session]
    importer: CatalogImporter


def create_catalog_services(
    settings: CatalogSettings | None = None,
    *,
    session_factory: sessionmaker[Session] | None = None,
) -> CatalogServices:
    """Construct scanner, hash cache, prober and importer from settings."""
    resolved_settings = settings or CatalogSettings.from_environ()
    resolved_session_factory = session_factory or create_session_factory(
        create_sqlite_engine(resolved_settings.database_path)
    )
    hasher = ContentHasher()

    scanner = FilesystemScanner(
        resolved_settings.uploads_path,
        hasher=hasher,
        hash_workers=resolved_settings.hash_workers,
    )
    hash_cache = HashCache(
        resolved_settings.cache_path,
        catalog_root=resolved_settings.uploads_path,
        hasher=hasher,
    )
    prober = FfmpegMediaProber(
        resolved_settings.cache_path,
        use_ffmpeg=resolved_settings.use_ffmpeg,
        ffprobe_path=resolved_settings.ffprobe_path,
        ffmpeg_path=resolved_settings.ffmpeg_path,
        timeout_seconds=resolved_settings.probe_timeout_seconds,
        hasher=hasher,
    )
    importer = CatalogImporter(
        scanner=scanner,
        hash_cache=hash_cache,
        prober=prober,
        uow_factory=lambda: SqlAlchemyCatalogUnitOfWork(resolved_session_factory),
        media_workers=resolved_settings.media_workers,
        thumbnail_offset_seconds=resolved_settings.thumbnail_offset_seconds,
    )
    return CatalogServices(
        settings=resolved_settings,
        scanner=scanner,
        hash_cache=hash_cache,
        prober=prober,
        session_factory=resolved_session_factory,
        importer=importer,
    )
