"""
Attribute filter (place-level).

This module implements the list/map filter panel as a pure predicate:
- Each `FilterSpec` field is one predicate group (region, category, age, price, ...).
- Values inside a group are OR-ed; every non-empty group must pass (AND).
- Empty groups, an "all" indoor mode and an empty query impose no constraint.

Geographic restriction (radius) and ordering are separate steps; see
`parentmap.core.proximity` and `parentmap.features.sorting`.
"""

from __future__ import annotations

import logging
from typing import Iterable

from parentmap.domain.models import (
    AgeBucket,
    FilterSpec,
    Place,
    parse_age_bucket,
)

logger = logging.getLogger(__name__)

__all__ = ["AgeBucket", "FilterSpec", "parse_age_bucket", "matches", "filter_places"]

# "low" is a budget ceiling rather than an exact tier.
_PRICE_ACCEPTS: dict[str, frozenset[str]] = {
    "free": frozenset({"free"}),
    "low": frozenset({"free", "low"}),
    "medium": frozenset({"medium"}),
    "high": frozenset({"high"}),
}


def _region_ok(place: Place, spec: FilterSpec) -> bool:
    return not spec.regions or any(r in place.district for r in spec.regions)


def _category_ok(place: Place, spec: FilterSpec) -> bool:
    return not spec.categories or place.category in spec.categories


def _indoor_ok(place: Place, spec: FilterSpec) -> bool:
    if spec.indoor == "indoor":
        return place.indoor
    if spec.indoor == "outdoor":
        return not place.indoor
    return True


def _age_ok(place: Place, spec: FilterSpec) -> bool:
    if not spec.ages:
        return True
    return any(bucket.overlaps(place.age_range) for bucket in spec.age_buckets)


def _price_ok(place: Place, spec: FilterSpec) -> bool:
    if not spec.prices:
        return True
    return any(place.price_type in _PRICE_ACCEPTS[tier] for tier in spec.prices)


def _query_ok(place: Place, spec: FilterSpec) -> bool:
    # Surrounding whitespace from the search box is not part of the query.
    query = spec.query.strip().lower()
    if not query:
        return True
    haystacks = (place.name, place.district, place.category_label)
    return any(query in h.lower() for h in haystacks)


def _favorites_ok(place: Place, spec: FilterSpec) -> bool:
    return not spec.favorites_only or place.id in spec.favorites


_PREDICATES = (
    _query_ok,
    _favorites_ok,
    _region_ok,
    _category_ok,
    _indoor_ok,
    _age_ok,
    _price_ok,
)


def matches(place: Place, spec: FilterSpec) -> bool:
    """Return True when `place` passes every non-empty predicate group of `spec`."""
    return all(predicate(place, spec) for predicate in _PREDICATES)


def filter_places(places: Iterable[Place], spec: FilterSpec) -> list[Place]:
    """Keep matching places, preserving input order."""
    out = [p for p in places if matches(p, spec)]
    logger.debug("Attribute filter kept %d place(s).", len(out))
    return out
