"""
HTTP helpers for the open-data feeds (HKO rainfall CSV, data.gov.hk carparks).

Both feeds are plain unauthenticated GETs, so one `_get` does the work:
fixed User-Agent, per-call timeout, raise on non-2xx. Callers choose the body
decoding (`get_json` / `get_text`) and decide how failures degrade.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "parentmap/0.1.0 (+https://local)"


def _get(
    url: str,
    *,
    params: dict[str, Any] | None,
    headers: dict[str, str] | None,
    timeout_seconds: float,
) -> httpx.Response:
    request_headers = {"User-Agent": DEFAULT_USER_AGENT, **(headers or {})}
    with httpx.Client(timeout=timeout_seconds, headers=request_headers) as client:
        resp = client.get(url, params=params)
    logger.debug("GET %s -> %d (%d bytes)", resp.url, resp.status_code, len(resp.content))
    resp.raise_for_status()
    return resp


def get_json(
    url: str,
    *,
    params: dict[str, Any] | None = None,
    headers: dict[str, str] | None = None,
    timeout_seconds: float = 15,
) -> Any:
    """GET `url` and decode the JSON body.

    Raises:
        httpx.HTTPError: On transport errors or non-2xx status codes.
        ValueError: If the body is not valid JSON.
    """
    return _get(url, params=params, headers=headers, timeout_seconds=timeout_seconds).json()


def get_text(
    url: str,
    *,
    params: dict[str, Any] | None = None,
    headers: dict[str, str] | None = None,
    timeout_seconds: float = 15,
) -> str:
    """GET `url` and return the decoded text body (CSV feeds)."""
    return _get(url, params=params, headers=headers, timeout_seconds=timeout_seconds).text
