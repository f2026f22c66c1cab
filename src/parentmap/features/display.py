"""
Small distance/walking formatting helpers.

Used by the browse pipeline, the carpark feature and the CLI to print compact labels.
"""

from __future__ import annotations

import math

from parentmap.config.settings import WalkingSettings


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def format_distance(distance_km: float) -> str:
    """Metres (rounded) below 1 km, otherwise kilometres with one decimal."""
    if distance_km < 1:
        return f"{_round_half_up(distance_km * 1000)}m"
    return f"{distance_km:.1f}km"


def walking_minutes(distance_km: float, *, walking: WalkingSettings) -> int:
    return _round_half_up(distance_km * walking.minutes_per_km)


def walking_display(distance_km: float, *, walking: WalkingSettings) -> str:
    minutes = walking_minutes(distance_km, walking=walking)
    if minutes < 1:
        return "<1 min"
    if minutes > walking.far_threshold_minutes:
        return "far"
    return f"~{minutes} min"
