"""Unit tests for positional path parsing."""

from __future__ import annotations

from course_catalog.domain.catalog import HashDigest, HashMode, ParsedPath


def test_parsed_path_maps_five_segments_and_strips_lesson_extension() -> None:
    parsed = ParsedPath.from_relative_path(
        "Programming/Jane Doe/Python Basics/01 Intro/01 Welcome.mp4"
    )

    assert parsed.topic == "Programming"
    assert parsed.instructor == "Jane Doe"
    assert parsed.course == "Python Basics"
    assert parsed.section == "01 Intro"
    assert parsed.lesson == "01 Welcome"
    assert parsed.has_course_structure is True


def test_parsed_path_leaves_missing_trailing_segments_absent() -> None:
    parsed = ParsedPath.from_relative_path("Programming/intro.mp4")

    assert parsed.topic == "Programming"
    assert parsed.instructor == "intro.mp4"
    assert parsed.course is None
    assert parsed.section is None
    assert parsed.lesson is None
    assert parsed.has_course_structure is False


def test_parsed_path_accepts_backslash_separators() -> None:
    parsed = ParsedPath.from_relative_path("Design\\Ann\\Figma\\Basics\\Frames.mkv")

    assert parsed.course == "Figma"
    assert parsed.lesson == "Frames"


def test_parsed_path_for_empty_path_has_no_segments() -> None:
    assert ParsedPath.from_relative_path("") == ParsedPath()


def test_metadata_digest_is_marked_degraded() -> None:
    assert HashDigest("abc", HashMode.METADATA).degraded is True
    assert HashDigest("abc").degraded is False
