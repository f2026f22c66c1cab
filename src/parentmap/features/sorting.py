"""
Result ordering.

Every mode is a stable sort, so ties keep the filter order:
- `default`: no reordering
- `distance`: nearest to `reference` first (reference is required)
- `price_asc` / `price_desc`: by price tier rank (free=0 .. high=3)

Records with unreadable coordinates sort last in distance mode rather than being
dropped, so ordering never changes the result count.
"""

from __future__ import annotations

import logging
from typing import Callable, Literal, Sequence, TypeVar

from parentmap.core.errors import InvalidCoordinateError, MissingReferenceError
from parentmap.core.geo import GeoPoint, distance_km, point_of
from parentmap.domain.models import PRICE_RANK

logger = logging.getLogger(__name__)

T = TypeVar("T")

SortMode = Literal["default", "distance", "price_asc", "price_desc"]
SORT_MODES: tuple[str, ...] = ("default", "distance", "price_asc", "price_desc")


def _price_rank(record: object) -> int:
    tier = getattr(record, "price_type", None)
    if tier not in PRICE_RANK:
        raise ValueError(f"record has no known price tier: {tier!r}")
    return PRICE_RANK[tier]


def sort_records(
    records: Sequence[T],
    mode: SortMode = "default",
    reference: GeoPoint | None = None,
    *,
    get_point: Callable[[T], GeoPoint] = point_of,
) -> list[T]:
    """Return a new list ordered by `mode`.

    Raises:
        MissingReferenceError: `mode="distance"` without a reference point.
        ValueError: Unknown mode.
    """
    if mode == "default":
        return list(records)

    if mode == "distance":
        if reference is None:
            raise MissingReferenceError("distance sort requires a reference point")

        def _key(record: T) -> float:
            try:
                return distance_km(reference, get_point(record))
            except InvalidCoordinateError:
                logger.warning("Record without a valid location sorted last.")
                return float("inf")

        return sorted(records, key=_key)

    if mode == "price_asc":
        return sorted(records, key=_price_rank)
    if mode == "price_desc":
        # Negated key instead of reverse=True keeps ties in input order.
        return sorted(records, key=lambda r: -_price_rank(r))

    raise ValueError(f"Unknown sort mode '{mode}', expected one of {', '.join(SORT_MODES)}")
