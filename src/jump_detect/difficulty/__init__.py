"""Per-object difficulty models used by the checks."""

from jump_detect.difficulty.aim import AimStrain, StrainModel, circle_radius

__all__ = [
    "AimStrain",
    "StrainModel",
    "circle_radius",
]
