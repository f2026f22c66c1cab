"""
Carpark ingestion client (data.gov.hk carpark info + vacancy).

This module is responsible only for:
- fetching the carpark info and vacancy datasets,
- parsing them into small typed dataclasses,
- joining vacancy onto carparks by park id.

Proximity and display rules live in `parentmap.features.carparks`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Callable

import httpx

from parentmap.config.settings import Settings
from parentmap.core.cache import TTLCache
from parentmap.core.cancel import CancelToken
from parentmap.core.errors import InvalidCoordinateError
from parentmap.core.geo import GeoPoint
from parentmap.core.http import get_json

logger = logging.getLogger(__name__)

CACHE_KEY = "carparks:with_vacancy"
# JSON decode failures surface as ValueError.
_UPSTREAM_ERRORS = (httpx.HTTPError, ValueError)


def _upstream_failed(exc: Exception) -> bool:
    if not isinstance(exc, _UPSTREAM_ERRORS):
        return False
    logger.warning("Carpark info unavailable: %s", exc)
    return True


@dataclass(frozen=True)
class CarparkVacancy:
    """Latest vacancy snapshot for one carpark (None = not reported)."""

    park_id: str
    vacancy: int | None
    vacancy_ev: int | None = None
    vacancy_dis: int | None = None
    last_update: str | None = None


@dataclass(frozen=True)
class Carpark:
    """Minimal carpark record used for nearby-parking lookups."""

    park_id: str
    name: str
    lat: float
    lng: float
    display_address: str | None = None
    district: str | None = None
    opening_status: str | None = None
    height_limits_m: tuple[float, ...] = ()
    facilities: tuple[str, ...] = ()
    payment_methods: tuple[str, ...] = ()
    contact_no: str | None = None
    website: str | None = None
    vacancy: CarparkVacancy | None = field(default=None, compare=False)

    @property
    def point(self) -> GeoPoint:
        return GeoPoint(lat=self.lat, lng=self.lng)

    @property
    def is_open(self) -> bool:
        return (self.opening_status or "").upper() == "OPEN"


def _results(payload: Any) -> list[dict[str, Any]]:
    if not isinstance(payload, dict):
        return []
    results = payload.get("results") or []
    return [r for r in results if isinstance(r, dict)] if isinstance(results, list) else []


def _opt_int(value: Any) -> int | None:
    if value is None:
        return None
    try:
        v = int(value)
    except (TypeError, ValueError):
        return None
    # The feed reports -1 when a carpark does not publish vacancy.
    return v if v >= 0 else None


def _opt_str(value: Any) -> str | None:
    s = str(value or "").strip()
    return s or None


def _str_tuple(value: Any) -> tuple[str, ...]:
    if not isinstance(value, list):
        return ()
    return tuple(str(v) for v in value if v)


def parse_carparks(payload: Any) -> list[Carpark]:
    """Parse the carpark info response; rows without id/name/valid location are skipped."""
    carparks: list[Carpark] = []
    skipped = 0
    for item in _results(payload):
        park_id = _opt_str(item.get("park_Id"))
        name = _opt_str(item.get("name"))
        if not park_id or not name:
            skipped += 1
            continue
        try:
            point = GeoPoint(lat=item.get("latitude"), lng=item.get("longitude"))
        except InvalidCoordinateError:
            skipped += 1
            continue

        heights: list[float] = []
        raw_limits = item.get("heightLimits")
        for limit in raw_limits if isinstance(raw_limits, list) else []:
            try:
                heights.append(float(limit.get("height")))
            except (AttributeError, TypeError, ValueError):
                continue

        carparks.append(
            Carpark(
                park_id=park_id,
                name=name,
                lat=point.lat,
                lng=point.lng,
                display_address=_opt_str(item.get("displayAddress")),
                district=_opt_str(item.get("district")),
                opening_status=_opt_str(item.get("opening_status")),
                height_limits_m=tuple(heights),
                facilities=_str_tuple(item.get("facilities")),
                payment_methods=_str_tuple(item.get("paymentMethods")),
                contact_no=_opt_str(item.get("contactNo")),
                website=_opt_str(item.get("website")),
            )
        )
    if skipped:
        logger.warning("Skipped %d malformed carpark row(s).", skipped)
    return carparks


def parse_vacancies(payload: Any, *, vehicle_type: str = "privateCar") -> list[CarparkVacancy]:
    """Parse the vacancy response, taking the first entry for `vehicle_type`."""
    out: list[CarparkVacancy] = []
    for item in _results(payload):
        park_id = _opt_str(item.get("park_Id"))
        if not park_id:
            continue
        entries = item.get(vehicle_type) or []
        first = entries[0] if isinstance(entries, list) and entries and isinstance(entries[0], dict) else {}
        out.append(
            CarparkVacancy(
                park_id=park_id,
                vacancy=_opt_int(first.get("vacancy")),
                vacancy_ev=_opt_int(first.get("vacancyEV")),
                vacancy_dis=_opt_int(first.get("vacancyDIS")),
                last_update=_opt_str(first.get("lastupdate")),
            )
        )
    return out


def merge_vacancies(carparks: list[Carpark], vacancies: list[CarparkVacancy]) -> list[Carpark]:
    """Attach vacancy snapshots by park id (new records; inputs untouched)."""
    by_id = {v.park_id: v for v in vacancies}
    return [replace(c, vacancy=by_id.get(c.park_id)) for c in carparks]


class CarparkClient:
    """Fetches carpark info + vacancy and caches the merged list."""

    def __init__(
        self,
        settings: Settings,
        cache: TTLCache,
        *,
        fetch_json: Callable[..., Any] = get_json,
    ):
        self._settings = settings
        self._cache = cache
        self._fetch_json = fetch_json

    def _fetch_info(self) -> Any:
        cfg = self._settings.ingestion.carparks
        logger.info("Fetching carpark info (%s)", cfg.vehicle_type)
        return self._fetch_json(
            cfg.info_url,
            params={"vehicleTypes": cfg.vehicle_type, "lang": cfg.lang},
            timeout_seconds=self._settings.app.http_timeout_seconds,
        )

    def _fetch_vacancy(self) -> Any:
        cfg = self._settings.ingestion.carparks
        logger.info("Fetching carpark vacancy (%s)", cfg.vehicle_type)
        return self._fetch_json(
            cfg.vacancy_url,
            params={"data": "vacancy", "vehicleTypes": cfg.vehicle_type, "lang": cfg.lang},
            timeout_seconds=self._settings.app.http_timeout_seconds,
        )

    def _load(self) -> list[Carpark]:
        carparks = parse_carparks(self._fetch_info())
        try:
            vacancies = parse_vacancies(
                self._fetch_vacancy(), vehicle_type=self._settings.ingestion.carparks.vehicle_type
            )
        except _UPSTREAM_ERRORS as exc:
            # Locations are still useful without live vacancy.
            logger.warning("Carpark vacancy unavailable: %s", exc)
            vacancies = []
        merged = merge_vacancies(carparks, vacancies)
        if not merged:
            logger.warning("Carpark feed returned 0 carparks after parsing; not caching.")
        return merged

    def get_carparks(self, *, token: CancelToken | None = None) -> list[Carpark]:
        """Return carparks with vacancy from cache, or fetch + merge on miss/expiry."""

        def cacheable(carparks: list[Carpark]) -> bool:
            return bool(carparks) and not (token is not None and token.cancelled)

        try:
            merged = self._cache.get_or_set(
                CACHE_KEY,
                self._load,
                ttl_ms=int(self._settings.ingestion.carparks.cache_ttl_seconds) * 1000,
                stale_if_error=True,
                stale_predicate=_upstream_failed,
                cacheable=cacheable,
            )
        except _UPSTREAM_ERRORS:
            return []

        if token is not None and token.cancelled:
            logger.debug("Carpark load cancelled; discarding %d carpark(s).", len(merged))
            return []
        return merged
