"""
Rainfall nowcast ingestion client (Hong Kong Observatory).

This module fetches the HKO gridded rainfall nowcast (CSV) and parses it into
`RainfallCell` records:
- one row per grid point per forecast period
- columns: start time, end time, latitude, longitude, accumulated rainfall (mm)

The feature layer (`parentmap.features.rainfall`) matches a venue to its nearest cell.

Failure policy: upstream/parse errors never reach the caller. The client logs them
and returns the stale cached grid when one exists, otherwise an empty list.
"""

from __future__ import annotations

import csv
import io
import logging
import math
from dataclasses import dataclass
from typing import Callable

import httpx

from parentmap.config.settings import Settings
from parentmap.core.cache import TTLCache
from parentmap.core.cancel import CancelToken
from parentmap.core.errors import InvalidCoordinateError
from parentmap.core.geo import GeoPoint
from parentmap.core.http import get_text

logger = logging.getLogger(__name__)

CACHE_KEY = "rainfall:nowcast"
_UPSTREAM_ERRORS = (httpx.HTTPError, csv.Error, UnicodeError)


def _upstream_failed(exc: Exception) -> bool:
    if not isinstance(exc, _UPSTREAM_ERRORS):
        return False
    logger.warning("Rainfall nowcast unavailable: %s", exc)
    return True


@dataclass(frozen=True)
class RainfallCell:
    """Forecast accumulated rainfall for one grid point and one period."""

    start_time: str
    end_time: str
    lat: float
    lng: float
    rainfall_mm: float

    @property
    def point(self) -> GeoPoint:
        return GeoPoint(lat=self.lat, lng=self.lng)


def parse_rainfall_csv(text: str) -> list[RainfallCell]:
    """Parse the nowcast CSV body (first line is a header).

    Rows that are short, carry invalid coordinates, or a negative/non-finite rainfall
    value are skipped. An unparseable rainfall value counts as 0 mm.
    """
    cells: list[RainfallCell] = []
    skipped = 0
    reader = csv.reader(io.StringIO(text.strip()))
    next(reader, None)
    for row in reader:
        if not row or not any(c.strip() for c in row):
            continue
        if len(row) < 5:
            skipped += 1
            continue
        start, end, lat_s, lng_s, rain_s = (c.strip() for c in row[:5])
        try:
            point = GeoPoint(lat=lat_s, lng=lng_s)
        except InvalidCoordinateError:
            skipped += 1
            continue
        try:
            rainfall = float(rain_s)
        except ValueError:
            rainfall = 0.0
        if not math.isfinite(rainfall) or rainfall < 0:
            skipped += 1
            continue
        cells.append(
            RainfallCell(start_time=start, end_time=end, lat=point.lat, lng=point.lng, rainfall_mm=rainfall)
        )
    if skipped:
        logger.warning("Skipped %d malformed rainfall row(s).", skipped)
    return cells


class RainfallClient:
    """Fetches and caches the nowcast grid."""

    def __init__(
        self,
        settings: Settings,
        cache: TTLCache,
        *,
        fetch_text: Callable[..., str] = get_text,
    ):
        self._settings = settings
        self._cache = cache
        self._fetch_text = fetch_text

    def fetch_csv(self) -> str:
        """Fetch the raw CSV body (no caching, errors propagate).

        Raises:
            httpx.HTTPError: On transport errors or non-2xx status codes.
        """
        logger.info("Fetching rainfall nowcast from HKO")
        return self._fetch_text(
            self._settings.ingestion.rainfall.url,
            timeout_seconds=self._settings.app.http_timeout_seconds,
        )

    def _load(self) -> list[RainfallCell]:
        cells = parse_rainfall_csv(self.fetch_csv())
        if not cells:
            logger.warning("HKO returned 0 rainfall cells after parsing; not caching.")
        return cells

    def get_cells(self, *, token: CancelToken | None = None) -> list[RainfallCell]:
        """Return the current grid from cache, or fetch it on miss/expiry.

        Upstream failures fall back to the stale grid, then to an empty list.
        """

        def cacheable(cells: list[RainfallCell]) -> bool:
            # Empty grids and cancelled loads never reach the cache.
            return bool(cells) and not (token is not None and token.cancelled)

        try:
            cells = self._cache.get_or_set(
                CACHE_KEY,
                self._load,
                ttl_ms=int(self._settings.ingestion.rainfall.cache_ttl_seconds) * 1000,
                stale_if_error=True,
                stale_predicate=_upstream_failed,
                cacheable=cacheable,
            )
        except _UPSTREAM_ERRORS:
            return []

        if token is not None and token.cancelled:
            logger.debug("Rainfall load cancelled; discarding %d cell(s).", len(cells))
            return []
        return cells
