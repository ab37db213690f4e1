"""Thresholds of the jump check, handled as an OmegaConf structured config.

Values come from three layers, later ones winning: the dataclass defaults,
an optional YAML file, and ``key=value`` overrides from the command line.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence, Union

from omegaconf import OmegaConf

logger = logging.getLogger(__name__)


@dataclass
class JumpCheckConfig:
    # Scanner
    tail_size: int = 10
    min_group_size: int = 5
    problem_delta: float = 1.5
    warning_delta: float = 0.75
    minor_delta: float = 0.5
    suppress_lookahead_delta: float = 0.75
    suppress_next_strain: float = 0.75  # compared against a raw strain, not a delta

    # Sampling and snap labels
    strain_precision: int = 2
    snap_precision: int = 2
    max_snap_denominator: int = 16
    snap_tolerance: float = 0.005
    unsnap_divisors: List[int] = field(default_factory=lambda: [16, 12])


def load_config(
    path: Optional[Union[Path, str]] = None,
    overrides: Sequence[str] = (),
) -> JumpCheckConfig:
    """Build a JumpCheckConfig from defaults, a YAML file and dotlist overrides.

    Args:
        path: Optional YAML file with a subset of the fields.
        overrides: ``key=value`` strings, e.g. ``["tail_size=8"]``.

    Returns:
        A validated JumpCheckConfig.
    """
    cfg = OmegaConf.structured(JumpCheckConfig)
    if path is not None:
        logger.info("Loading config from %s", path)
        cfg = OmegaConf.merge(cfg, OmegaConf.load(Path(path)))
    if overrides:
        cfg = OmegaConf.merge(cfg, OmegaConf.from_dotlist(list(overrides)))
    return OmegaConf.to_object(cfg)
