"""Human-readable rendering of jump findings.

Messages start with an osu! editor timestamp (``01:23:456 (3,4) - ``), which
the editor turns into a link selecting the flagged objects.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from jump_detect.checks.jump import Finding, Severity
from jump_detect.data.beatmap import HitObject

CHECK_METADATA: dict[str, Any] = {
    "category": "Compose",
    "message": "Abnormally huge spacing.",
    "purpose": "Prevent unintentional huge spacing spikes.",
    "reasoning": (
        "If not done intentionally, a sudden huge jump hurts gameplay. Aim strain "
        "here is the old star rating's aim weight for an object; while outdated, "
        "it still represents huge spacing well."
    ),
}


@dataclass(frozen=True, slots=True)
class IssueTemplate:
    level: str  # issue level shown to the reviewer
    message: str
    cause: str


ISSUE_TEMPLATES: dict[Severity, IssueTemplate] = {
    Severity.PROBLEM: IssueTemplate(
        level="Warning",
        message="{timestamp}Extremely huge spacing ({strain:.2f}, {snap} snap), ensure if it's intended.",
        cause="An extremely huge jump, which most of the time is unintended as they're too huge.",
    ),
    Severity.WARNING: IssueTemplate(
        level="Warning",
        message="{timestamp}Abnormally huge spacing ({strain:.2f}, {snap} snap), ensure if it's intended.",
        cause="Probably a big jump, though it may be intended.",
    ),
    Severity.MINOR: IssueTemplate(
        level="Minor",
        message=(
            "{timestamp}Spacing is above average ({strain:.2f}, {snap} snap), "
            "though this is most likely fine."
        ),
        cause="Most likely doesn't matter, but it's a jump above average.",
    ),
}


def format_time(time: float) -> str:
    """Format milliseconds as ``mm:ss:mmm``."""
    total = int(round(time))
    sign = "-" if total < 0 else ""
    total = abs(total)
    minutes, rest = divmod(total, 60000)
    seconds, millis = divmod(rest, 1000)
    return f"{sign}{minutes:02d}:{seconds:02d}:{millis:03d}"


def format_timestamp(objects: tuple[HitObject | None, ...] | list[HitObject | None]) -> str:
    """Editor timestamp for a run of objects, e.g. ``"00:12:345 (1,2) - "``."""
    present = [o for o in objects if o is not None]
    if not present:
        return ""
    combos = ",".join(str(o.combo_number) for o in present)
    return f"{format_time(present[0].time)} ({combos}) - "


def render_finding(finding: Finding) -> str:
    template = ISSUE_TEMPLATES[finding.severity]
    return template.message.format(
        timestamp=format_timestamp(finding.objects),
        strain=finding.strain,
        snap=finding.snap,
    )


def finding_to_dict(finding: Finding) -> dict[str, Any]:
    """JSON-ready view of a finding."""
    obj = finding.objects[-1]
    return {
        "severity": finding.severity.value,
        "level": ISSUE_TEMPLATES[finding.severity].level,
        "time": obj.time,
        "combo": [o.combo_number for o in finding.objects if o is not None],
        "snap": finding.snap,
        "strain": finding.strain,
        "message": render_finding(finding),
    }
