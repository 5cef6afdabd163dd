"""Pydantic schema for the subset of ffprobe JSON the prober reads."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _number_or_none(value: Any) -> Any:
    # ffprobe reports "N/A" for unknown numeric fields.
    if isinstance(value, str) and value.strip() in {"", "N/A"}:
        return None
    return value


class FfprobeFormat(BaseModel):
    """Container-level fields."""

    model_config = ConfigDict(extra="ignore")

    duration: float | None = None
    bit_rate: int | None = None
    size: int | None = None

    @field_validator("duration", "bit_rate", "size", mode="before")
    @classmethod
    def _blank_to_none(cls, value: Any) -> Any:
        return _number_or_none(value)


class FfprobeStream(BaseModel):
    """One stream entry."""

    model_config = ConfigDict(extra="ignore")

    codec_type: str | None = None
    codec_name: str | None = None
    width: int | None = None
    height: int | None = None

    @field_validator("width", "height", mode="before")
    @classmethod
    def _blank_to_none(cls, value: Any) -> Any:
        return _number_or_none(value)


class FfprobeOutput(BaseModel):
    """Top-level ``-show_format -show_streams`` payload."""

    model_config = ConfigDict(extra="ignore")

    format: FfprobeFormat = Field(default_factory=FfprobeFormat)
    streams: list[FfprobeStream] = Field(default_factory=list)

    def first_video_stream(self) -> FfprobeStream | None:
        for stream in self.streams:
            if stream.codec_type == "video":
                return stream
        return None
