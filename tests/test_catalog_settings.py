"""Tests for environment-driven catalog settings."""

from __future__ import annotations

from pathlib import Path

import pytest

from course_catalog.application.errors import CatalogConfigurationError
from course_catalog.infrastructure.config import CatalogSettings
from course_catalog.infrastructure.db.config import get_database_path


def test_settings_defaults_when_environment_is_empty(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))

    settings = CatalogSettings.from_environ({})

    assert settings.database_path == (
        tmp_path / "home" / ".video-course-catalog" / "catalog.db"
    ).resolve()
    assert settings.uploads_path == (tmp_path / "uploads").resolve()
    assert settings.cache_path == (tmp_path / "cache").resolve()
    assert settings.use_ffmpeg is True
    assert settings.ffprobe_path is None
    assert settings.probe_timeout_seconds == 30.0
    assert settings.media_workers == 2
    assert settings.hash_workers == 4
    assert settings.thumbnail_offset_seconds == 10.0


def test_settings_read_overrides_and_treat_blank_as_default(tmp_path: Path) -> None:
    settings = CatalogSettings.from_environ(
        {
            "CATALOG_DB_PATH": str(tmp_path / "db" / "c.db"),
            "CATALOG_UPLOADS_PATH": str(tmp_path / "videos"),
            "CATALOG_CACHE_PATH": "   ",
            "CATALOG_USE_FFMPEG": "off",
            "CATALOG_FFPROBE_PATH": "/opt/ffprobe",
            "CATALOG_PROBE_TIMEOUT_SECONDS": "2.5",
            "CATALOG_MEDIA_WORKERS": "3",
            "CATALOG_HASH_WORKERS": "8",
        }
    )

    assert settings.database_path == (tmp_path / "db" / "c.db").resolve()
    assert settings.uploads_path == (tmp_path / "videos").resolve()
    assert settings.cache_path == Path("cache").resolve()
    assert settings.use_ffmpeg is False
    assert settings.ffprobe_path == "/opt/ffprobe"
    assert settings.probe_timeout_seconds == 2.5
    assert settings.media_workers == 3
    assert settings.hash_workers == 8


@pytest.mark.parametrize(
    ("name", "value", "message"),
    [
        ("CATALOG_USE_FFMPEG", "maybe", "must be a boolean"),
        ("CATALOG_MEDIA_WORKERS", "0", "must be >= 1"),
        ("CATALOG_HASH_WORKERS", "four", "must be an integer"),
        ("CATALOG_PROBE_TIMEOUT_SECONDS", "-1", "must be positive"),
        ("CATALOG_THUMBNAIL_OFFSET_SECONDS", "soon", "must be a number"),
    ],
)
def test_settings_reject_invalid_values(name: str, value: str, message: str) -> None:
    with pytest.raises(CatalogConfigurationError, match=message):
        CatalogSettings.from_environ({name: value})


def test_database_path_reads_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CATALOG_DB_PATH", str(tmp_path / "x.db"))

    assert get_database_path() == (tmp_path / "x.db").resolve()
