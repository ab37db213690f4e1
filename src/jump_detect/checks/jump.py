"""Detection of abnormally huge spacing between consecutive objects.

Pipeline, evaluated once per map:
    1. Sample: aim strain of every object but the first, in time order
       (spinners score 0).
    2. Classify: snap label of the gap to the previous object.
    3. Group: samples sharing a snap label form a group.
    4. Scan: within each group, walk the highest strains in ascending order
       and flag values that jump far above the value before them.

Severity is decided by the size of the step:
    - Problem: step >= 1.5
    - Warning: step >= 0.75
    - Minor:   step >= 0.5, except on the highest value of the group
"""

from __future__ import annotations

import enum
import logging
import math
from collections.abc import Iterable, Iterator
from dataclasses import dataclass

from jump_detect.checks.snap import classify_snap
from jump_detect.config import JumpCheckConfig
from jump_detect.data.beatmap import Beatmap, HitObject
from jump_detect.difficulty.aim import AimStrain, StrainModel

logger = logging.getLogger(__name__)


class Severity(enum.Enum):
    PROBLEM = "problem"
    WARNING = "warning"
    MINOR = "minor"


@dataclass(frozen=True, slots=True)
class StrainSample:
    """Aim strain and snap label of one object."""

    hit_object: HitObject
    strain: float
    snap: str


@dataclass(frozen=True, slots=True)
class Finding:
    """A flagged jump: the pair of objects it spans and how bad it is."""

    severity: Severity
    objects: tuple[HitObject | None, HitObject]  # (predecessor, object)
    snap: str
    strain: float

    @property
    def time(self) -> float:
        return self.objects[-1].time


def sample_strain(obj: HitObject, strain_model: StrainModel, precision: int = 2) -> float:
    """Aim strain of ``obj``, rounded; spinners are always exactly 0.

    The model must see every object in time order, so spinners are still
    passed to ``observe`` even though their strain is not computed.
    """
    if obj.is_spinner:
        strain_model.observe(obj)
        return 0.0
    return max(round(strain_model.strain_of(obj), precision), 0.0)


def collect_samples(
    beatmap: Beatmap,
    strain_model: StrainModel,
    config: JumpCheckConfig,
) -> list[StrainSample]:
    """Sample every object after the first, in time order."""
    objects = beatmap.hit_objects
    if len(objects) < 2:
        return []

    strain_model.reset()
    strain_model.observe(objects[0])
    samples: list[StrainSample] = []
    for obj in objects[1:]:
        strain = sample_strain(obj, strain_model, config.strain_precision)
        snap = classify_snap(beatmap, obj, config)
        samples.append(StrainSample(hit_object=obj, strain=strain, snap=snap))
    return samples


def group_by_snap(samples: Iterable[StrainSample]) -> dict[str, list[StrainSample]]:
    """Group samples by snap label, keeping map order within each group."""
    groups: dict[str, list[StrainSample]] = {}
    for sample in samples:
        groups.setdefault(sample.snap, []).append(sample)
    return groups


def _severity_of(
    delta: float,
    is_last: bool,
    config: JumpCheckConfig,
) -> Severity | None:
    if delta >= config.problem_delta:
        return Severity.PROBLEM
    if delta >= config.warning_delta:
        return Severity.WARNING
    # The highest value has nothing after it and would always look like a step
    if delta >= config.minor_delta and not is_last:
        return Severity.MINOR
    return None


def scan_group(
    samples: list[StrainSample],
    snap: str,
    config: JumpCheckConfig | None = None,
    beatmap: Beatmap | None = None,
) -> Iterator[Finding]:
    """Yield findings for the highest-strain outliers of one snap group.

    Args:
        samples: The group's samples in map order.
        snap: The group's snap label.
        config: Thresholds; defaults to JumpCheckConfig().
        beatmap: Used to resolve each finding's preceding object. Without it
            the predecessor slot of ``Finding.objects`` is None.

    Yields:
        Findings in ascending strain order.
    """
    config = config or JumpCheckConfig()
    if len(samples) < config.min_group_size:
        logger.debug("Snap %s: %d samples, too few to judge", snap, len(samples))
        return

    ordered = sorted(samples, key=lambda s: s.strain)
    tail = ordered[-config.tail_size:]
    strains = [s.strain for s in tail]

    previous_strain = strains[0]
    for i, sample in enumerate(tail):
        current = strains[i]
        next_strain = strains[i + 1] if i + 1 < len(strains) else math.inf
        next_next = strains[i + 2] if i + 2 < len(strains) else math.inf
        delta = current - previous_strain
        lookahead_delta = next_next - next_strain
        previous_strain = current

        # A step that falls back to low values right after is not sustained
        if (
            lookahead_delta < config.suppress_lookahead_delta
            and next_strain < config.suppress_next_strain
        ):
            continue

        severity = _severity_of(delta, i == len(tail) - 1, config)
        if severity is None:
            continue

        obj = sample.hit_object
        prev = beatmap.predecessor(obj) if beatmap is not None else None
        logger.debug(
            "Snap %s: %s at %.0f ms (strain %.2f, step %.2f)",
            snap, severity.value, obj.time, current, delta,
        )
        yield Finding(severity=severity, objects=(prev, obj), snap=snap, strain=current)


def detect_jumps(
    beatmap: Beatmap,
    strain_model: StrainModel | None = None,
    config: JumpCheckConfig | None = None,
) -> list[Finding]:
    """Run the jump check on a map.

    Args:
        beatmap: The map to check.
        strain_model: Aim strain model; defaults to AimStrain for the map's
            circle size. It is reset before use.
        config: Thresholds; defaults to JumpCheckConfig().

    Returns:
        All findings, group by group.

    Raises:
        MissingTimingDataError: If the map has objects but no timing segments.
    """
    config = config or JumpCheckConfig()
    if strain_model is None:
        strain_model = AimStrain(circle_size=beatmap.circle_size)

    samples = collect_samples(beatmap, strain_model, config)
    groups = group_by_snap(samples)

    findings: list[Finding] = []
    for snap, group in groups.items():
        findings.extend(scan_group(group, snap, config, beatmap))

    logger.info(
        "%s: %d samples in %d snap groups, %d findings",
        beatmap.name, len(samples), len(groups), len(findings),
    )
    return findings
