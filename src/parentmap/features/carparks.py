from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from parentmap.config.settings import Settings
from parentmap.core.geo import GeoPoint
from parentmap.core.proximity import within_radius
from parentmap.features.display import format_distance, walking_display, walking_minutes
from parentmap.ingestion.carpark_client import Carpark

VacancyStatus = Literal["full", "low", "available", "unknown"]


@dataclass(frozen=True)
class NearbyCarpark:
    carpark: Carpark
    distance_km: float
    distance_display: str
    walking_minutes: int
    walking_display: str
    vacancy_status: VacancyStatus


def height_limit_m(carpark: Carpark) -> float | None:
    """First positive height limit, if the carpark publishes one."""
    for h in carpark.height_limits_m:
        if h > 0:
            return h
    return None


def vacancy_status(carpark: Carpark, *, low_threshold: int) -> VacancyStatus:
    if carpark.vacancy is None or carpark.vacancy.vacancy is None:
        return "unknown"
    count = carpark.vacancy.vacancy
    if count == 0:
        return "full"
    if count <= low_threshold:
        return "low"
    return "available"


def nearby_carparks(
    carparks: list[Carpark],
    point: GeoPoint,
    *,
    settings: Settings,
    radius_km: float | None = None,
    max_results: int | None = None,
) -> list[NearbyCarpark]:
    """Carparks around `point`, nearest first, capped at `max_results`."""
    cfg = settings.features.carparks
    radius = cfg.radius_km if radius_km is None else radius_km
    cap = cfg.max_results if max_results is None else max_results
    walking = settings.features.walking

    out: list[NearbyCarpark] = []
    for ranked in within_radius(carparks, point, radius, limit=cap):
        d = ranked.distance_km
        out.append(
            NearbyCarpark(
                carpark=ranked.record,
                distance_km=d,
                distance_display=format_distance(d),
                walking_minutes=walking_minutes(d, walking=walking),
                walking_display=walking_display(d, walking=walking),
                vacancy_status=vacancy_status(ranked.record, low_threshold=cfg.low_vacancy_threshold),
            )
        )
    return out
