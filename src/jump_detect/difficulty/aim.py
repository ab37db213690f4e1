"""Legacy osu!standard aim strain.

Estimates how much cursor movement an object demands relative to the object
before it. This is the aim skill of the old (pre-2019) star rating; the
absolute numbers are outdated as a difficulty rating but still single out
huge spacing reliably, which is all the jump check needs from them.

The model is stateful: it remembers the previous objects of the sequence, so
objects must be fed in time order, once each, after a ``reset()``.
"""

from __future__ import annotations

import logging
import math
from typing import Protocol

import numpy as np

from jump_detect.data.beatmap import HitObject, HitObjectType

logger = logging.getLogger(__name__)

NORMALIZED_RADIUS = 52.0
MIN_STRAIN_TIME = 50.0  # ms
TIMING_THRESHOLD = 107.0  # ms
ANGLE_BONUS_BEGIN = math.pi / 3
ANGLE_BONUS_SCALE = 90.0
DISTANCE_EXPONENT = 0.99


class StrainModel(Protocol):
    """Interface of a per-object strain model."""

    def reset(self) -> None: ...

    def observe(self, obj: HitObject) -> None: ...

    def strain_of(self, obj: HitObject) -> float: ...


def circle_radius(circle_size: float) -> float:
    """Hit circle radius in playfield pixels for a circle size setting."""
    return 64.0 * (1.0 - 0.7 * (circle_size - 5.0) / 5.0) / 2.0


def _diminish(value: float) -> float:
    return value ** DISTANCE_EXPONENT


class AimStrain:
    """Aim strain of each object with respect to its predecessors.

    Args:
        circle_size: Circle size of the map, used to normalise distances.
    """

    def __init__(self, circle_size: float = 4.0) -> None:
        radius = circle_radius(circle_size)
        scale = NORMALIZED_RADIUS / radius
        if radius < 30.0:
            scale *= 1.0 + min(30.0 - radius, 5.0) / 50.0
        self.scale = scale
        self.reset()

    def reset(self) -> None:
        self._previous: list[HitObject] = []
        self._previous_jump = 0.0
        self._previous_strain_time = TIMING_THRESHOLD

    def observe(self, obj: HitObject) -> None:
        """Record an object without computing its strain."""
        if self._previous:
            self._previous_jump = self._jump_distance(self._previous[-1], obj)
            self._previous_strain_time = self._strain_time(self._previous[-1], obj)
        self._remember(obj)

    def strain_of(self, obj: HitObject) -> float:
        """Strain of moving from the last observed object to ``obj``.

        The first object of a sequence has nothing to move from and scores 0.
        """
        if not self._previous:
            self._remember(obj)
            return 0.0

        last = self._previous[-1]
        jump = self._jump_distance(last, obj)
        travel = self._travel_distance(last)
        strain_time = self._strain_time(last, obj)

        bonus = 0.0
        angle = self._angle(obj)
        if angle is not None and angle > ANGLE_BONUS_BEGIN:
            angle_bonus = math.sqrt(
                max(self._previous_jump - ANGLE_BONUS_SCALE, 0.0)
                * math.sin(angle - ANGLE_BONUS_BEGIN) ** 2
                * max(jump - ANGLE_BONUS_SCALE, 0.0)
            )
            bonus = 1.5 * _diminish(angle_bonus) / max(TIMING_THRESHOLD, self._previous_strain_time)

        jump_exp = _diminish(jump)
        travel_exp = _diminish(travel)
        distance = jump_exp + travel_exp + math.sqrt(jump_exp * travel_exp)
        value = max(
            bonus + distance / max(strain_time, TIMING_THRESHOLD),
            distance / strain_time,
        )

        self._previous_jump = jump
        self._previous_strain_time = strain_time
        self._remember(obj)
        return value

    # ------------------------------------------------------------------

    def _remember(self, obj: HitObject) -> None:
        self._previous.append(obj)
        if len(self._previous) > 2:
            self._previous.pop(0)

    def _position(self, obj: HitObject) -> np.ndarray:
        return np.array([obj.x, obj.y], dtype=np.float64) * self.scale

    def _end_position(self, obj: HitObject) -> np.ndarray:
        return np.array([obj.end_x, obj.end_y], dtype=np.float64) * self.scale

    def _jump_distance(self, last: HitObject, obj: HitObject) -> float:
        if obj.type is HitObjectType.SPINNER or last.type is HitObjectType.SPINNER:
            return 0.0
        return float(np.linalg.norm(self._position(obj) - self._end_position(last)))

    def _travel_distance(self, last: HitObject) -> float:
        """Distance covered inside the previous slider.

        Approximated by the straight line from head to end position instead of
        the lazy cursor path along the curve. A slider with an even slide count
        ends on its head and so travels 0, where lazy travel would not.
        """
        if last.type is not HitObjectType.SLIDER:
            return 0.0
        return float(np.linalg.norm(self._end_position(last) - self._position(last)))

    @staticmethod
    def _strain_time(last: HitObject, obj: HitObject) -> float:
        return max(obj.time - last.time, MIN_STRAIN_TIME)

    def _angle(self, obj: HitObject) -> float | None:
        """Angle at the middle of the last three objects, in radians."""
        if len(self._previous) < 2:
            return None
        before, last = self._previous
        v1 = self._end_position(before) - self._position(last)
        v2 = self._position(obj) - self._end_position(last)
        dot = float(np.dot(v1, v2))
        det = float(v1[0] * v2[1] - v1[1] * v2[0])
        return abs(math.atan2(det, dot))
