"""Exception types raised by jump-detect."""

from __future__ import annotations


class JumpDetectError(Exception):
    """Base class for all jump-detect errors."""


class BeatmapParseError(JumpDetectError):
    """Raised when a .osu file cannot be read as a beatmap."""


class MissingTimingDataError(JumpDetectError):
    """Raised when no timing segment covers a time coordinate.

    A map without timing information cannot be evaluated, so this is fatal
    for the whole map.
    """

    def __init__(self, time: float) -> None:
        super().__init__(f"No timing segment defined at {time:.0f} ms")
        self.time = time
