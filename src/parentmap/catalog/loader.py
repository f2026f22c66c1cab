"""
Place catalog loader.

The catalog is a local JSON file (default: `data/places/locations.json`) shaped as
`{"locations": [...]}` (a bare list is also accepted). Entries are validated one by one
into `Place` models; an invalid entry (bad coordinates, unknown category, inverted age
range) is logged and skipped instead of failing the whole load. Duplicate ids keep the
first occurrence.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from parentmap.core.env import resolve_project_path
from parentmap.domain.models import Place

logger = logging.getLogger(__name__)


def _entries(payload: Any) -> list[Any]:
    if isinstance(payload, dict):
        payload = payload.get("locations") or []
    if not isinstance(payload, list):
        raise ValueError("Invalid catalog shape; expected a list or {'locations': [...]}.")
    return payload


def parse_places(payload: Any) -> list[Place]:
    """Validate raw catalog entries into places (validate-and-skip)."""
    places: list[Place] = []
    seen: set[str] = set()
    for i, entry in enumerate(_entries(payload)):
        try:
            place = Place.model_validate(entry)
        except ValidationError as exc:
            logger.warning("Skipping catalog entry #%d: %s", i, exc.errors()[0].get("msg"))
            continue
        if place.id in seen:
            logger.warning("Skipping duplicate place id '%s'.", place.id)
            continue
        seen.add(place.id)
        places.append(place)
    return places


def load_places(path: str | Path) -> list[Place]:
    """Load and validate a place catalog JSON file."""
    resolved = resolve_project_path(path)
    payload = json.loads(resolved.read_text(encoding="utf-8"))
    places = parse_places(payload)
    logger.info("Loaded %d place(s) from %s", len(places), resolved)
    return places
