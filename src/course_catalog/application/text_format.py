"""Slug and human-readable formatting helpers."""

from __future__ import annotations

import hashlib
import re
import unicodedata

_NON_SLUG_PATTERN = re.compile(r"[^a-z0-9\s-]")
_SEPARATOR_PATTERN = re.compile(r"[\s-]+")


def slugify(text: str) -> str:
    """Build a lowercase URL-safe slug with accents stripped.

    Names with no ASCII letters or digits left (``"日本語"``, ``"???"``) get a
    stable ``n-<digest>`` slug so distinct names never share one.
    """
    decomposed = unicodedata.normalize("NFKD", text)
    ascii_text = decomposed.encode("ascii", "ignore").decode("ascii").lower()
    cleaned = _NON_SLUG_PATTERN.sub("", ascii_text)
    slug = _SEPARATOR_PATTERN.sub("-", cleaned).strip("-")
    if slug or not text.strip():
        return slug
    digest = hashlib.sha1(text.strip().encode("utf-8")).hexdigest()[:10]
    return f"n-{digest}"


def format_bytes(size: int, precision: int = 2) -> str:
    """Format byte counts with 1024-based units."""
    units = ["B", "KB", "MB", "GB", "TB"]
    value = float(size)
    index = 0
    while value > 1024 and index < len(units) - 1:
        value /= 1024
        index += 1
    return f"{round(value, precision):g} {units[index]}"


def format_seconds(seconds: float) -> str:
    """Format a duration as MM:SS, or HH:MM:SS past one hour."""
    total = int(max(seconds, 0))
    hours, remainder = divmod(total, 3600)
    minutes, secs = divmod(remainder, 60)
    if hours > 0:
        return f"{hours:02d}:{minutes:02d}:{secs:02d}"
    return f"{minutes:02d}:{secs:02d}"


def format_bitrate(bitrate: int) -> str:
    """Format bits per second with 1000-based units."""
    if bitrate <= 0:
        return "0 bps"

    units = ["bps", "Kbps", "Mbps", "Gbps"]
    rate = float(bitrate)
    index = 0
    while rate >= 1000 and index < len(units) - 1:
        rate /= 1000
        index += 1
    return f"{round(rate, 1):g} {units[index]}"
