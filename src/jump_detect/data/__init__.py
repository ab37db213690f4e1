"""Beatmap model and .osu reader."""

from jump_detect.data.beatmap import (
    Beatmap,
    HitObject,
    HitObjectType,
    SliderVelocityChange,
    TimingSegment,
    parse_osu_file,
    parse_osu_text,
)

__all__ = [
    "Beatmap",
    "HitObject",
    "HitObjectType",
    "SliderVelocityChange",
    "TimingSegment",
    "parse_osu_file",
    "parse_osu_text",
]
