"""Map checks: the jump check and its rendering."""

from jump_detect.checks.jump import (
    Finding,
    Severity,
    StrainSample,
    collect_samples,
    detect_jumps,
    group_by_snap,
    sample_strain,
    scan_group,
)
from jump_detect.checks.report import (
    CHECK_METADATA,
    ISSUE_TEMPLATES,
    finding_to_dict,
    format_timestamp,
    render_finding,
)
from jump_detect.checks.snap import classify_snap, snap_fraction

__all__ = [
    # Jump check
    "Finding",
    "Severity",
    "StrainSample",
    "collect_samples",
    "detect_jumps",
    "group_by_snap",
    "sample_strain",
    "scan_group",
    # Snap
    "classify_snap",
    "snap_fraction",
    # Report
    "CHECK_METADATA",
    "ISSUE_TEMPLATES",
    "finding_to_dict",
    "format_timestamp",
    "render_finding",
]
