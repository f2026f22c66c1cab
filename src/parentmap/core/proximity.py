"""
Proximity matching over located records.

Two primitives, both linear scans (datasets here are a few thousand rows at most):
- `nearest`: the single closest record within a maximum distance (rainfall grid lookup).
- `within_radius`: all records within a radius, nearest first, optionally capped
  (nearby carparks, list radius, map viewport culling).

Neither function mutates its input. Results pair the original record with the
computed distance (`Ranked`). Records whose coordinates cannot be read are logged
and skipped so one bad row never aborts a pass.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Generic, Iterable, TypeVar

from parentmap.core.errors import InvalidCoordinateError
from parentmap.core.geo import GeoPoint, distance_km, point_of

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class Ranked(Generic[T]):
    """A record decorated with its distance from the query point."""

    record: T
    distance_km: float


def _distances(
    records: Iterable[T], origin: GeoPoint, get_point: Callable[[T], GeoPoint]
) -> list[Ranked[T]]:
    out: list[Ranked[T]] = []
    skipped = 0
    for record in records:
        try:
            point = get_point(record)
        except InvalidCoordinateError as exc:
            skipped += 1
            logger.debug("Skipping record without a valid location: %s", exc)
            continue
        out.append(Ranked(record=record, distance_km=distance_km(origin, point)))
    if skipped:
        logger.warning("Skipped %d record(s) with invalid coordinates.", skipped)
    return out


def nearest(
    records: Iterable[T],
    query: GeoPoint,
    max_distance_km: float,
    *,
    get_point: Callable[[T], GeoPoint] = point_of,
) -> Ranked[T] | None:
    """Return the closest record to `query`, or None if it lies beyond `max_distance_km`.

    Ties keep the first record encountered, so the result is deterministic for a
    stable input order. An empty input returns None.
    """
    limit = float(max_distance_km)
    if limit < 0:
        raise ValueError("max_distance_km must be >= 0")

    best: Ranked[T] | None = None
    for candidate in _distances(records, query, get_point):
        if best is None or candidate.distance_km < best.distance_km:
            best = candidate
    if best is None or best.distance_km > limit:
        return None
    return best


def within_radius(
    records: Iterable[T],
    center: GeoPoint,
    radius_km: float,
    *,
    limit: int | None = None,
    is_selected: Callable[[T], bool] | None = None,
    get_point: Callable[[T], GeoPoint] = point_of,
) -> list[Ranked[T]]:
    """Return records within `radius_km` of `center`, nearest first.

    - Ties keep input order (stable sort).
    - `is_selected` marks records that must stay visible: they are kept regardless of
      radius and placed before every distance-ordered entry.
    - `limit` truncates the final list (selected records count towards it).
    """
    r = float(radius_km)
    if r < 0:
        raise ValueError("radius_km must be >= 0")
    if limit is not None and int(limit) < 0:
        raise ValueError("limit must be >= 0")

    pinned: list[Ranked[T]] = []
    inside: list[Ranked[T]] = []
    for candidate in _distances(records, center, get_point):
        if is_selected is not None and is_selected(candidate.record):
            pinned.append(candidate)
        elif candidate.distance_km <= r:
            inside.append(candidate)

    inside.sort(key=lambda c: c.distance_km)
    out = pinned + inside
    if limit is not None:
        out = out[: int(limit)]
    return out
