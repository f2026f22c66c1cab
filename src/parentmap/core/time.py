"""
Time helpers for upstream feeds.

The HKO rainfall nowcast stamps forecast periods as compact local times
(`YYYYMMDDHHMM`, Hong Kong time). We parse them into timezone-aware datetimes so
periods can be ordered and compared safely.
"""

from __future__ import annotations

from datetime import datetime
from zoneinfo import ZoneInfo

COMPACT_FORMAT = "%Y%m%d%H%M"


def ensure_tz(dt: datetime, timezone: str) -> datetime:
    """Ensure `dt` has tzinfo; attach `timezone` if naive."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=ZoneInfo(timezone))
    return dt


def parse_compact_time(value: str, timezone: str) -> datetime:
    """Parse a `YYYYMMDDHHMM` stamp into an aware datetime.

    Raises:
        ValueError: If the value does not match the compact format.
    """
    return ensure_tz(datetime.strptime(value.strip(), COMPACT_FORMAT), timezone)


def format_forecast_time(value: str) -> str:
    """Render `YYYYMMDDHHMM` as `HH:MM`; other shapes pass through unchanged."""
    if len(value) != 12:
        return value
    return f"{value[8:10]}:{value[10:12]}"
