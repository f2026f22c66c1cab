"""
API routes.

Endpoints:
- GET `/api/places`: filtered, radius-bounded, sorted place list.
- GET `/api/places/{place_id}`: one place.
- GET `/api/places/{place_id}/carparks`: nearby carparks with vacancy.
- GET `/api/places/{place_id}/rainfall`: rainfall nowcast at the place.
- GET `/api/map`: markers for the current viewport.
- GET `/api/rainfall`: read-through proxy of the HKO nowcast CSV.
- GET `/api/health`: liveness + cache stats.
"""

from __future__ import annotations

import json
import logging
from functools import lru_cache
from typing import Any, Literal

import httpx
from fastapi import APIRouter, HTTPException, Query
from fastapi.responses import PlainTextResponse

from parentmap.browse.pipeline import browse_places, build_cache, should_offer_recenter, visible_on_map
from parentmap.catalog.loader import load_places
from parentmap.config.overrides import apply_settings_overrides
from parentmap.config.settings import Settings, get_settings
from parentmap.core.cache import record_cache_stats
from parentmap.core.errors import InvalidCoordinateError
from parentmap.core.geo import GeoPoint
from parentmap.core.time import format_forecast_time, parse_compact_time
from parentmap.domain.models import BrowseResult, FilterSpec, Place
from parentmap.features.carparks import height_limit_m, nearby_carparks
from parentmap.features.rainfall import describe_rainfall, forecast_timeline, rainfall_at_location
from parentmap.ingestion.carpark_client import CarparkClient
from parentmap.ingestion.rainfall_client import RainfallClient

logger = logging.getLogger(__name__)

router = APIRouter()


@lru_cache
def _places() -> list[Place]:
    settings = get_settings()
    return load_places(settings.catalog.path)


@lru_cache
def _clients() -> tuple[RainfallClient, CarparkClient]:
    settings = get_settings()
    cache = build_cache(settings)
    return RainfallClient(settings, cache), CarparkClient(settings, cache)


def _point(lat: float | None, lng: float | None) -> GeoPoint | None:
    if lat is None and lng is None:
        return None
    if lat is None or lng is None:
        raise HTTPException(status_code=422, detail="lat and lng must be given together")
    try:
        return GeoPoint(lat=lat, lng=lng)
    except InvalidCoordinateError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


def _settings_for(overrides: str | None) -> Settings:
    settings = get_settings()
    if not overrides:
        return settings
    try:
        return apply_settings_overrides(settings, json.loads(overrides))
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


def _iso(value: str, timezone: str) -> str | None:
    try:
        return parse_compact_time(value, timezone).isoformat()
    except ValueError:
        return None


def _get_place(place_id: str) -> Place:
    for place in _places():
        if place.id == place_id:
            return place
    raise HTTPException(status_code=404, detail=f"Unknown place '{place_id}'")


@router.get("/api/health")
def get_health() -> dict:
    return {"status": "ok", "places": len(_places())}


@router.get("/api/places", response_model=BrowseResult)
def get_places(
    region: list[str] | None = Query(default=None),
    category: list[str] | None = Query(default=None),
    age: list[str] | None = Query(default=None),
    price: list[str] | None = Query(default=None),
    indoor: Literal["all", "indoor", "outdoor"] = "all",
    q: str = "",
    favorite: list[str] | None = Query(default=None),
    favorites_only: bool = False,
    lat: float | None = None,
    lng: float | None = None,
    user_lat: float | None = None,
    user_lng: float | None = None,
    radius_km: float | None = Query(default=None, ge=0),
    sort: Literal["default", "distance", "price_asc", "price_desc"] | None = None,
    limit: int | None = Query(default=None, ge=1),
    selected_id: str | None = None,
    settings_overrides: str | None = None,
) -> BrowseResult:
    """Run one browse pass over the catalog."""
    settings = _settings_for(settings_overrides)
    try:
        spec = FilterSpec(
            regions=region or [],
            categories=category or [],
            ages=age or [],
            prices=price or [],
            indoor=indoor,
            query=q,
            favorites_only=favorites_only,
            favorites=set(favorite or []),
        )
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc

    return browse_places(
        _places(),
        spec,
        settings=settings,
        center=_point(lat, lng),
        radius_km=radius_km,
        sort=sort,
        reference=_point(user_lat, user_lng),
        limit=limit,
        selected_id=selected_id,
    )


@router.get("/api/map")
def get_map(
    lat: float,
    lng: float,
    zoom: int = Query(..., ge=0, le=22),
    selected_id: str | None = None,
    list_lat: float | None = None,
    list_lng: float | None = None,
) -> dict:
    """Markers for the viewport plus whether the list should offer a refresh."""
    settings = get_settings()
    center = _point(lat, lng)
    markers = visible_on_map(_places(), center, zoom, settings=settings, selected_id=selected_id)
    list_center = _point(list_lat, list_lng)
    return {
        "zoom": zoom,
        "markers": [
            {"id": p.id, "name": p.name, "district": p.district, "lat": p.lat, "lng": p.lng, "category": p.category}
            for p in markers
        ],
        "offer_recenter": (
            should_offer_recenter(list_center, center, settings=settings) if list_center is not None else False
        ),
    }


@router.get("/api/places/{place_id}")
def get_place(place_id: str) -> dict:
    place = _get_place(place_id)
    return {**place.model_dump(mode="json", by_alias=True), "slug": place.slug, "link_url": place.link_url}


@router.get("/api/places/{place_id}/carparks")
def get_place_carparks(
    place_id: str,
    radius_km: float | None = Query(default=None, ge=0),
    max_results: int | None = Query(default=None, ge=1),
) -> dict:
    settings = get_settings()
    place = _get_place(place_id)
    _, carpark_client = _clients()

    with record_cache_stats() as stats:
        carparks = carpark_client.get_carparks()

    nearby = nearby_carparks(
        carparks, place.point, settings=settings, radius_km=radius_km, max_results=max_results
    )
    return {
        "place_id": place.id,
        "carparks": [
            {
                "park_id": n.carpark.park_id,
                "name": n.carpark.name,
                "address": n.carpark.display_address,
                "lat": n.carpark.lat,
                "lng": n.carpark.lng,
                "open": n.carpark.is_open,
                "distance_km": n.distance_km,
                "distance": n.distance_display,
                "walking": n.walking_display,
                "vacancy": n.carpark.vacancy.vacancy if n.carpark.vacancy else None,
                "vacancy_ev": n.carpark.vacancy.vacancy_ev if n.carpark.vacancy else None,
                "vacancy_dis": n.carpark.vacancy.vacancy_dis if n.carpark.vacancy else None,
                "vacancy_status": n.vacancy_status,
                "last_update": n.carpark.vacancy.last_update if n.carpark.vacancy else None,
                "height_limit_m": height_limit_m(n.carpark),
                "facilities": list(n.carpark.facilities),
            }
            for n in nearby
        ],
        "meta": {"cache": stats.as_dict()},
    }


@router.get("/api/places/{place_id}/rainfall")
def get_place_rainfall(place_id: str) -> dict:
    settings = get_settings()
    place = _get_place(place_id)
    rainfall_client, _ = _clients()

    with record_cache_stats() as stats:
        cells = rainfall_client.get_cells()

    match = rainfall_at_location(cells, place.point, settings=settings)
    payload: dict[str, Any] = {"place_id": place.id, "nowcast": None, "timeline": [], "meta": {"cache": stats.as_dict()}}
    if match is None:
        return payload

    cell = match.record
    desc = describe_rainfall(cell.rainfall_mm)
    payload["nowcast"] = {
        "rainfall_mm": cell.rainfall_mm,
        "level": desc.level,
        "text": desc.text,
        "period": f"{format_forecast_time(cell.start_time)} - {format_forecast_time(cell.end_time)}",
        "starts_at": _iso(cell.start_time, settings.app.timezone),
        "ends_at": _iso(cell.end_time, settings.app.timezone),
        "grid_distance_km": match.distance_km,
    }
    payload["timeline"] = [
        {
            "start": format_forecast_time(m.record.start_time),
            "end": format_forecast_time(m.record.end_time),
            "rainfall_mm": m.record.rainfall_mm,
            "level": describe_rainfall(m.record.rainfall_mm).level,
        }
        for m in forecast_timeline(cells, place.point, settings=settings)
    ]
    return payload


@router.get("/api/rainfall", response_class=PlainTextResponse)
def get_rainfall_csv() -> PlainTextResponse:
    """Pass the HKO CSV through so browsers avoid cross-origin fetches."""
    settings = get_settings()
    rainfall_client, _ = _clients()
    try:
        body = rainfall_client.fetch_csv()
    except httpx.HTTPError as exc:
        logger.warning("Rainfall proxy fetch failed: %s", exc)
        raise HTTPException(status_code=500, detail="Failed to fetch rainfall data") from exc
    max_age = settings.ingestion.rainfall.proxy_max_age_seconds
    return PlainTextResponse(
        body,
        media_type="text/plain; charset=utf-8",
        headers={"Cache-Control": f"public, max-age={max_age}"},
    )
