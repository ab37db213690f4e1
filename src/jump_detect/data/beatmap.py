"""osu!standard beatmap model and .osu reader.

Only the parts of a map that the jump check looks at are modelled:
hit objects (position, timing, type), uninherited timing lines (beat length)
and inherited lines (slider velocity, needed for slider end times).
"""

from __future__ import annotations

import enum
import logging
import math
from collections.abc import Iterator
from dataclasses import dataclass, field, replace
from pathlib import Path

from jump_detect.errors import BeatmapParseError, MissingTimingDataError

logger = logging.getLogger(__name__)

# Bit flags of the .osu hit object "type" field
_TYPE_CIRCLE = 1
_TYPE_SLIDER = 2
_TYPE_NEW_COMBO = 4
_TYPE_SPINNER = 8
_TYPE_HOLD = 128

DEFAULT_UNSNAP_DIVISORS: tuple[int, ...] = (16, 12)


# ---------------------------------------------------------------------------
# Dataclasses
# ---------------------------------------------------------------------------


class HitObjectType(enum.Enum):
    """Discriminant for the kinds of playable objects."""

    CIRCLE = "circle"
    SLIDER = "slider"
    SPINNER = "spinner"
    HOLD = "hold"


@dataclass(slots=True)
class HitObject:
    """A single playable object."""

    time: float  # ms
    type: HitObjectType
    x: float = 256.0  # playfield px, 0-512
    y: float = 192.0  # playfield px, 0-384
    end_time: float | None = None  # defaults to time
    slides: int = 1  # sliders: repeats + 1
    end_x: float | None = None  # slider end position, defaults to head
    end_y: float | None = None
    new_combo: bool = False
    combo_number: int = 1

    def __post_init__(self) -> None:
        if self.end_time is None:
            self.end_time = self.time
        if self.end_x is None:
            self.end_x = self.x
        if self.end_y is None:
            self.end_y = self.y

    @property
    def is_spinner(self) -> bool:
        return self.type is HitObjectType.SPINNER

    @property
    def edge_times(self) -> list[float]:
        """Times at which the object has an edge (head, repeats, tail)."""
        if self.type is HitObjectType.CIRCLE:
            return [self.time]
        if self.type is HitObjectType.SLIDER:
            span = (self.end_time - self.time) / max(self.slides, 1)
            return [self.time + i * span for i in range(self.slides + 1)]
        return [self.time, self.end_time]


@dataclass(slots=True)
class TimingSegment:
    """An uninherited timing line: beat length in effect from ``offset`` on."""

    offset: float  # ms
    beat_length: float  # ms per beat
    meter: int = 4

    @property
    def bpm(self) -> float:
        return 60000.0 / self.beat_length


@dataclass(slots=True)
class SliderVelocityChange:
    """An inherited timing line, only its slider velocity multiplier matters."""

    offset: float
    multiplier: float = 1.0


@dataclass(slots=True)
class Beatmap:
    """A parsed difficulty with the accessors the jump check needs."""

    hit_objects: list[HitObject] = field(default_factory=list)
    timing_segments: list[TimingSegment] = field(default_factory=list)
    slider_velocity_changes: list[SliderVelocityChange] = field(default_factory=list)
    circle_size: float = 4.0
    slider_multiplier: float = 1.4
    title: str = ""
    artist: str = ""
    creator: str = ""
    version: str = ""
    _positions: dict[int, int] = field(init=False, repr=False, compare=False, default_factory=dict)

    def __post_init__(self) -> None:
        # Sorted copies: objects may be shared with other maps
        self.hit_objects = sorted(self.hit_objects, key=lambda o: o.time)
        self.timing_segments = sorted(self.timing_segments, key=lambda s: s.offset)
        self.slider_velocity_changes = sorted(self.slider_velocity_changes, key=lambda s: s.offset)
        self._positions = {id(obj): i for i, obj in enumerate(self.hit_objects)}

    def __iter__(self) -> Iterator[HitObject]:
        return iter(self.hit_objects)

    def __len__(self) -> int:
        return len(self.hit_objects)

    @property
    def name(self) -> str:
        return f"{self.artist} - {self.title} [{self.version}]"

    def position_of(self, obj: HitObject) -> int:
        """Index of ``obj`` in this map's time-ordered objects.

        Raises:
            ValueError: If ``obj`` is not one of this map's objects.
        """
        try:
            return self._positions[id(obj)]
        except KeyError:
            raise ValueError(f"Object at {obj.time:.0f} ms is not part of this beatmap") from None

    def predecessor(self, obj: HitObject) -> HitObject | None:
        i = self.position_of(obj)
        return self.hit_objects[i - 1] if i > 0 else None

    def successor(self, obj: HitObject) -> HitObject | None:
        i = self.position_of(obj)
        return self.hit_objects[i + 1] if i + 1 < len(self.hit_objects) else None

    def edge_times(self, obj: HitObject) -> list[float]:
        return obj.edge_times

    def timing_segment_at(self, time: float) -> TimingSegment | None:
        """Return the timing segment in effect at ``time``.

        Times before the first segment use the first segment, as the game does.
        Returns None only when the map has no timing segments at all.
        """
        if not self.timing_segments:
            return None
        current = self.timing_segments[0]
        for segment in self.timing_segments:
            if segment.offset > time:
                break
            current = segment
        return current

    def slider_velocity_at(self, time: float) -> float:
        """Slider velocity multiplier in effect at ``time``."""
        segment = self.timing_segment_at(time)
        red_offset = segment.offset if segment is not None else -math.inf
        multiplier = 1.0
        for change in self.slider_velocity_changes:
            if change.offset > time:
                break
            # A red line resets slider velocity
            if change.offset >= red_offset:
                multiplier = change.multiplier
        return multiplier

    def unsnap_offset(
        self,
        time: float,
        divisors: tuple[int, ...] | list[int] = DEFAULT_UNSNAP_DIVISORS,
    ) -> float:
        """Signed offset that moves ``time`` onto the nearest beat-grid position.

        Every divisor defines a grid (1/16 covers 1/1, 1/2, 1/4 and 1/8; 1/12
        covers 1/3 and 1/6). The smallest correction over all grids wins.

        Raises:
            MissingTimingDataError: If the map has no timing segments.
        """
        segment = self.timing_segment_at(time)
        if segment is None:
            raise MissingTimingDataError(time)

        best = math.inf
        for divisor in divisors:
            step = segment.beat_length / divisor
            position = (time - segment.offset) / step
            desired = segment.offset + math.floor(position + 0.5) * step
            offset = desired - time
            if abs(offset) < abs(best):
                best = offset
        return best


# ---------------------------------------------------------------------------
# .osu reader
# ---------------------------------------------------------------------------


def parse_osu_file(path: Path | str) -> Beatmap:
    """Parse an osu!standard .osu file.

    Args:
        path: Path to the .osu file.

    Returns:
        Beatmap with hit objects and timing information.

    Raises:
        BeatmapParseError: If the file lacks the ``osu file format`` header.
    """
    path = Path(path)
    return parse_osu_text(path.read_text(encoding="utf-8-sig"))


def parse_osu_text(text: str) -> Beatmap:
    """Parse the contents of a .osu file.

    Unknown sections are ignored and malformed lines are skipped with a
    warning.
    """
    lines = [line.strip() for line in text.lstrip("\ufeff").splitlines()]
    content = [line for line in lines if line and not line.startswith("//")]
    if not content or not content[0].startswith("osu file format"):
        raise BeatmapParseError("Missing 'osu file format' header")

    sections: dict[str, list[str]] = {}
    current: list[str] | None = None
    for line in content[1:]:
        if line.startswith("[") and line.endswith("]"):
            current = sections.setdefault(line[1:-1], [])
        elif current is not None:
            current.append(line)

    metadata = _parse_key_values(sections.get("Metadata", []))
    difficulty = _parse_key_values(sections.get("Difficulty", []))

    timing_segments: list[TimingSegment] = []
    sv_changes: list[SliderVelocityChange] = []
    for line in sections.get("TimingPoints", []):
        try:
            point = _parse_timing_point(line)
        except (ValueError, IndexError):
            logger.warning("Skipping malformed timing point: %r", line)
            continue
        if isinstance(point, TimingSegment):
            timing_segments.append(point)
        else:
            sv_changes.append(point)

    beatmap = Beatmap(
        timing_segments=timing_segments,
        slider_velocity_changes=sv_changes,
        circle_size=float(difficulty.get("CircleSize", 4.0)),
        slider_multiplier=float(difficulty.get("SliderMultiplier", 1.4)),
        title=metadata.get("Title", ""),
        artist=metadata.get("Artist", ""),
        creator=metadata.get("Creator", ""),
        version=metadata.get("Version", ""),
    )

    hit_objects: list[HitObject] = []
    for line in sections.get("HitObjects", []):
        try:
            obj = _parse_hit_object(line, beatmap)
        except (ValueError, IndexError):
            logger.warning("Skipping malformed hit object: %r", line)
            continue
        if obj is not None:
            hit_objects.append(obj)

    hit_objects.sort(key=lambda o: o.time)
    _assign_combo_numbers(hit_objects)
    beatmap = replace(beatmap, hit_objects=hit_objects)

    logger.debug(
        "Parsed %s: %d objects, %d timing segments",
        beatmap.name, len(hit_objects), len(timing_segments),
    )
    return beatmap


def _parse_key_values(lines: list[str]) -> dict[str, str]:
    values: dict[str, str] = {}
    for line in lines:
        key, sep, value = line.partition(":")
        if sep:
            values[key.strip()] = value.strip()
    return values


def _parse_timing_point(line: str) -> TimingSegment | SliderVelocityChange:
    parts = line.split(",")
    offset = float(parts[0])
    beat_length = float(parts[1])
    meter = int(parts[2]) if len(parts) > 2 and parts[2] else 4
    # Old formats have no uninherited column: negative beat length marks inherited
    uninherited = parts[6] == "1" if len(parts) > 6 else beat_length > 0
    if uninherited:
        return TimingSegment(offset=offset, beat_length=beat_length, meter=meter)
    multiplier = 100.0 / -beat_length if beat_length < 0 else 1.0
    return SliderVelocityChange(offset=offset, multiplier=min(max(multiplier, 0.1), 10.0))


def _parse_hit_object(line: str, beatmap: Beatmap) -> HitObject | None:
    parts = line.split(",")
    x, y, time = float(parts[0]), float(parts[1]), float(parts[2])
    flags = int(parts[3])
    new_combo = bool(flags & _TYPE_NEW_COMBO)

    if flags & _TYPE_CIRCLE:
        return HitObject(time=time, type=HitObjectType.CIRCLE, x=x, y=y, new_combo=new_combo)

    if flags & _TYPE_SLIDER:
        curve = parts[5].split("|")
        slides = int(parts[6])
        length = float(parts[7])
        end_x, end_y = x, y
        if slides % 2 == 1 and len(curve) > 1:
            # Odd slide count ends on the last control point
            end_x, end_y = (float(v) for v in curve[-1].split(":"))
        return HitObject(
            time=time,
            type=HitObjectType.SLIDER,
            x=x,
            y=y,
            end_time=time + _slider_duration(beatmap, time, length, slides),
            slides=slides,
            end_x=end_x,
            end_y=end_y,
            new_combo=new_combo,
        )

    if flags & _TYPE_SPINNER:
        return HitObject(
            time=time, type=HitObjectType.SPINNER, x=x, y=y,
            end_time=float(parts[5]), new_combo=True,
        )

    if flags & _TYPE_HOLD:
        return HitObject(
            time=time, type=HitObjectType.HOLD, x=x, y=y,
            end_time=float(parts[5].split(":")[0]), new_combo=new_combo,
        )

    logger.warning("Unknown hit object type %d at %.0f ms", flags, time)
    return None


def _slider_duration(beatmap: Beatmap, time: float, length: float, slides: int) -> float:
    segment = beatmap.timing_segment_at(time)
    if segment is None:
        # No beat length yet: the slider gets no duration and sampling reports the map
        return 0.0
    velocity = beatmap.slider_multiplier * 100.0 * beatmap.slider_velocity_at(time)
    return length * slides / velocity * segment.beat_length


def _assign_combo_numbers(hit_objects: list[HitObject]) -> None:
    combo = 0
    force_new = True
    for obj in hit_objects:
        if obj.new_combo or force_new:
            combo = 1
        else:
            combo += 1
        obj.combo_number = combo
        # The object after a spinner always starts a new combo
        force_new = obj.is_spinner
