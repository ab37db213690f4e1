"""Rhythmic snap labels.

Describes the gap between an object and the end of the object before it as a
fraction of a beat, e.g. ``"1/2"`` for an eighth-note gap in 4/4. Objects are
grouped by this label before outliers are searched, so a 1/1 jump is only
ever compared with other 1/1 jumps.
"""

from __future__ import annotations

import logging
import math
from fractions import Fraction

from jump_detect.config import JumpCheckConfig
from jump_detect.data.beatmap import Beatmap, HitObject
from jump_detect.errors import MissingTimingDataError

logger = logging.getLogger(__name__)


def snap_fraction(
    ratio: float,
    max_denominator: int = 16,
    tolerance: float = 0.005,
) -> str:
    """Render a beat ratio as the simplest fraction close to it.

    Walks the continued-fraction convergents of ``ratio`` and returns the first
    one within ``tolerance``. If none is found before the denominator would
    exceed ``max_denominator``, the closest fraction under that bound is used.

    Args:
        ratio: Gap length in beats, already rounded (e.g. 0.33).
        max_denominator: Largest denominator a label may have.
        tolerance: Accepted distance between the label and ``ratio``.

    Returns:
        ``"n/d"`` in lowest terms; whole numbers render as ``"n/1"``.
    """
    value = Fraction(repr(float(ratio)))
    sign = -1 if value < 0 else 1
    value = abs(value)
    limit = Fraction(repr(float(tolerance)))

    h_prev, h = 0, 1
    k_prev, k = 1, 0
    x = value
    result: Fraction | None = None
    while True:
        a = math.floor(x)
        h_prev, h = h, a * h + h_prev
        k_prev, k = k, a * k + k_prev
        if k > max_denominator:
            break
        convergent = Fraction(h, k)
        if abs(convergent - value) <= limit:
            result = convergent
            break
        remainder = x - a
        if remainder == 0:
            result = convergent
            break
        x = 1 / remainder

    if result is None:
        result = value.limit_denominator(max_denominator)
    return f"{sign * result.numerator}/{result.denominator}"


def classify_snap(
    beatmap: Beatmap,
    obj: HitObject,
    config: JumpCheckConfig | None = None,
) -> str:
    """Snap label of the gap between ``obj`` and the last edge of its predecessor.

    Both ends of the gap are moved onto the beat grid before measuring, so
    1 ms rounding in the file does not split a snap group.

    Raises:
        ValueError: If ``obj`` is the first object of the map.
        MissingTimingDataError: If no timing segment covers the object.
    """
    config = config or JumpCheckConfig()
    prev = beatmap.predecessor(obj)
    if prev is None:
        raise ValueError(f"Object at {obj.time:.0f} ms has no predecessor")

    divisors = tuple(config.unsnap_divisors)
    last_edge = beatmap.edge_times(prev)[-1]
    snapped_current = obj.time + beatmap.unsnap_offset(obj.time, divisors)
    snapped_prev = last_edge + beatmap.unsnap_offset(last_edge, divisors)
    delta = snapped_current - snapped_prev

    segment = beatmap.timing_segment_at(snapped_current)
    if segment is None:
        raise MissingTimingDataError(snapped_current)

    ratio = round(delta / segment.beat_length, config.snap_precision)
    return snap_fraction(ratio, config.max_snap_denominator, config.snap_tolerance)
