from __future__ import annotations

import math
from dataclasses import dataclass
from math import asin, cos, radians, sin, sqrt
from typing import Any, Mapping

from parentmap.core.errors import InvalidCoordinateError

"""
Geospatial helpers.

We keep a tiny geometry layer here so feature modules can do distance calculations
without pulling in heavier GIS dependencies.
"""

EARTH_RADIUS_KM = 6371.0


def _coerce(value: Any, *, name: str, bound: float) -> float:
    try:
        v = float(value)
    except (TypeError, ValueError) as exc:
        raise InvalidCoordinateError(f"{name} must be a number, got {value!r}") from exc
    if not math.isfinite(v) or v < -bound or v > bound:
        raise InvalidCoordinateError(f"{name} must be within [-{bound:g}, {bound:g}], got {value!r}")
    return v


@dataclass(frozen=True)
class GeoPoint:
    """A latitude/longitude pair in decimal degrees.

    Construction validates ranges; out-of-range input raises `InvalidCoordinateError`
    instead of being clamped.
    """

    lat: float
    lng: float

    def __post_init__(self) -> None:
        object.__setattr__(self, "lat", _coerce(self.lat, name="lat", bound=90))
        object.__setattr__(self, "lng", _coerce(self.lng, name="lng", bound=180))


def distance_km(a: GeoPoint, b: GeoPoint) -> float:
    """Great-circle distance in kilometres (Haversine, spherical Earth)."""
    lat1 = radians(a.lat)
    lat2 = radians(b.lat)
    dlat = lat2 - lat1
    dlng = radians(b.lng) - radians(a.lng)

    h = sin(dlat / 2) ** 2 + cos(lat1) * cos(lat2) * sin(dlng / 2) ** 2
    # Floating-point overshoot near antipodes can push h slightly outside [0, 1].
    h = min(1.0, max(0.0, h))
    return 2 * EARTH_RADIUS_KM * asin(sqrt(h))


def point_of(record: Any) -> GeoPoint:
    """Extract a `GeoPoint` from a located record.

    Accepts a `GeoPoint`, anything exposing `.point`, objects with `lat`/`lng`
    attributes, or mappings with `lat`/`lng` keys.
    """
    if isinstance(record, GeoPoint):
        return record
    point = getattr(record, "point", None)
    if isinstance(point, GeoPoint):
        return point
    if isinstance(record, Mapping):
        if "lat" not in record or "lng" not in record:
            raise InvalidCoordinateError("record has no lat/lng keys")
        return GeoPoint(lat=record["lat"], lng=record["lng"])
    if hasattr(record, "lat") and hasattr(record, "lng"):
        return GeoPoint(lat=record.lat, lng=record.lng)
    raise InvalidCoordinateError(f"cannot locate record of type {type(record).__name__}")
