from __future__ import annotations

# This module is the "orchestrator" for one browse pass.
# It wires together:
# - the catalog snapshot (list[Place], treated as immutable)
# - attribute filtering (FilterSpec)
# - geographic restriction (RadiusFilter around the list center)
# - ordering (SortPolicy)
# - display decoration (distance + walking labels) for the presentation layer
#
# Every step is a pure function, so the pass can be re-run on every filter change.

import logging
from typing import Callable

from parentmap.config.settings import Settings, get_settings
from parentmap.core.cache import TTLCache
from parentmap.core.geo import GeoPoint, distance_km
from parentmap.core.proximity import within_radius
from parentmap.domain.models import BrowseResult, FilterSpec, Place, PlaceView
from parentmap.features.display import format_distance, walking_display, walking_minutes
from parentmap.features.filters import filter_places
from parentmap.features.sorting import SortMode, sort_records

logger = logging.getLogger(__name__)


def build_cache(settings: Settings) -> TTLCache:
    # One process-local cache shared by the rainfall and carpark clients.
    return TTLCache(
        enabled=settings.cache.enabled,
        default_ttl_ms=settings.cache.default_ttl_seconds * 1000,
    )


def default_center(settings: Settings) -> GeoPoint:
    c = settings.features.browse.default_center
    return GeoPoint(lat=c.lat, lng=c.lng)


def _selected_predicate(selected_id: str | None) -> Callable[[Place], bool] | None:
    if not selected_id:
        return None
    return lambda p: p.id == selected_id


def _view(place: Place, reference: GeoPoint | None, *, settings: Settings, selected: bool) -> PlaceView:
    if reference is None:
        return PlaceView(place=place, selected=selected)
    d = distance_km(reference, place.point)
    walking = settings.features.walking
    return PlaceView(
        place=place,
        distance_km=d,
        distance_display=format_distance(d),
        walking_minutes=walking_minutes(d, walking=walking),
        walking_display=walking_display(d, walking=walking),
        selected=selected,
    )


def browse_places(
    places: list[Place],
    spec: FilterSpec,
    *,
    settings: Settings | None = None,
    center: GeoPoint | None = None,
    radius_km: float | None = None,
    sort: SortMode | None = None,
    reference: GeoPoint | None = None,
    limit: int | None = None,
    selected_id: str | None = None,
) -> BrowseResult:
    """Filter -> restrict by radius -> sort -> decorate.

    - `center` anchors the radius (defaults to the configured map center).
    - `reference` anchors distance sorting and display (user location); it falls back
      to `center` so distance sort always has a reference.
    - A `selected_id` place that passes the attribute filter stays in the list even
      outside the radius, and is listed first.
    """
    settings = settings or get_settings()
    cfg = settings.features.browse
    center = center or default_center(settings)
    radius = cfg.radius_km if radius_km is None else float(radius_km)
    mode: SortMode = sort or cfg.default_sort
    reference = reference or center

    candidates = filter_places(places, spec)
    is_selected = _selected_predicate(selected_id)
    kept = {r.record.id for r in within_radius(candidates, center, radius, is_selected=is_selected)}

    # Iterate candidates (not the distance-ordered result) so "default" keeps filter order.
    pinned = [p for p in candidates if is_selected is not None and is_selected(p)]
    rest = [p for p in candidates if p.id in kept and p not in pinned]
    ordered = pinned + sort_records(rest, mode, reference)

    total = len(ordered)
    if limit is not None:
        ordered = ordered[: int(limit)]

    items = [
        _view(p, reference, settings=settings, selected=bool(is_selected and is_selected(p)))
        for p in ordered
    ]
    logger.debug(
        "Browse pass: %d/%d place(s) within %.1fkm (sort=%s)", total, len(places), radius, mode
    )
    return BrowseResult(
        center={"lat": center.lat, "lng": center.lng},
        radius_km=radius,
        sort=mode,
        total=total,
        items=items,
    )


def visible_on_map(
    places: list[Place],
    center: GeoPoint,
    zoom: int,
    *,
    settings: Settings | None = None,
    selected_id: str | None = None,
) -> list[Place]:
    """Markers to draw for the current viewport.

    Below the minimum zoom only the selected place is drawn; otherwise the nearest
    places within the viewport radius, capped at `max_items`, selected place first.
    """
    settings = settings or get_settings()
    cfg = settings.features.viewport
    is_selected = _selected_predicate(selected_id)

    if zoom < cfg.min_zoom:
        return [p for p in places if is_selected is not None and is_selected(p)][:1]

    ranked = within_radius(
        places, center, cfg.radius_km, limit=cfg.max_items, is_selected=is_selected
    )
    return [r.record for r in ranked]


def should_offer_recenter(list_center: GeoPoint, map_center: GeoPoint, *, settings: Settings | None = None) -> bool:
    """True once the map has moved far enough from the list center to offer a refresh."""
    settings = settings or get_settings()
    return distance_km(list_center, map_center) > settings.features.browse.recenter_threshold_km
