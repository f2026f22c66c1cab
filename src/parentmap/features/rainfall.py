# src/parentmap/features/rainfall.py
"""
Rainfall feature (venue-level).

This module turns the nowcast grid (ingestion output) into answers for one venue:
- "how much rain is forecast here?" via nearest-cell matching with a distance cap
- a per-period timeline for the same location
- a human-readable intensity level

Why a distance cap?
- The grid only covers Hong Kong. A venue far from every cell must report "no data"
  rather than borrowing a distant cell's forecast.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Literal

from parentmap.config.settings import Settings
from parentmap.core.geo import GeoPoint
from parentmap.core.proximity import Ranked, nearest
from parentmap.ingestion.rainfall_client import RainfallCell

RainfallLevel = Literal["none", "light", "moderate", "heavy", "very_heavy"]


@dataclass(frozen=True)
class RainfallDescription:
    text: str
    level: RainfallLevel


def describe_rainfall(rainfall_mm: float) -> RainfallDescription:
    """Map accumulated rainfall (mm) onto the display scale."""
    if rainfall_mm <= 0:
        return RainfallDescription(text="無雨", level="none")
    if rainfall_mm < 0.5:
        return RainfallDescription(text="微雨", level="light")
    if rainfall_mm < 2.5:
        return RainfallDescription(text="小雨", level="light")
    if rainfall_mm < 8:
        return RainfallDescription(text="中雨", level="moderate")
    if rainfall_mm < 16:
        return RainfallDescription(text="大雨", level="heavy")
    return RainfallDescription(text="暴雨", level="very_heavy")


def forecast_periods(cells: Iterable[RainfallCell]) -> list[tuple[str, str]]:
    """Distinct (start, end) periods ordered by start time."""
    seen: dict[tuple[str, str], None] = {}
    for cell in cells:
        seen.setdefault((cell.start_time, cell.end_time), None)
    return sorted(seen, key=lambda p: p[0])


def rainfall_at_location(
    cells: list[RainfallCell],
    point: GeoPoint,
    *,
    settings: Settings,
    period_start: str | None = None,
) -> Ranked[RainfallCell] | None:
    """Nearest grid cell to `point` within the configured match distance.

    With `period_start`, only cells of that forecast period are considered;
    otherwise the earliest period wins ties (file order).
    """
    if period_start is not None:
        cells = [c for c in cells if c.start_time == period_start]
    return nearest(cells, point, settings.ingestion.rainfall.max_match_distance_km)


def forecast_timeline(
    cells: list[RainfallCell], point: GeoPoint, *, settings: Settings
) -> list[Ranked[RainfallCell]]:
    """One matched cell per forecast period (periods without a match are omitted)."""
    by_period: dict[tuple[str, str], list[RainfallCell]] = {}
    for cell in cells:
        by_period.setdefault((cell.start_time, cell.end_time), []).append(cell)

    timeline: list[Ranked[RainfallCell]] = []
    max_km = settings.ingestion.rainfall.max_match_distance_km
    for period in forecast_periods(cells):
        match = nearest(by_period[period], point, max_km)
        if match is not None:
            timeline.append(match)
    return timeline
