"""Flag abnormally huge spacing in osu!standard beatmaps."""

__version__ = "0.1.0"
