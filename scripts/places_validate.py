from __future__ import annotations

import argparse
import json
from collections import Counter
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from parentmap.core.env import resolve_project_path
from parentmap.domain.models import Place

# Rough bounding box for Hong Kong; venues outside it are almost always swapped lat/lng.
HK_BOUNDS = {"lat": (22.13, 22.58), "lng": (113.82, 114.45)}


def _read_json(path: Path) -> Any:
    return json.loads(path.read_text(encoding="utf-8"))


def _in_bounds(place: Place) -> bool:
    lat_lo, lat_hi = HK_BOUNDS["lat"]
    lng_lo, lng_hi = HK_BOUNDS["lng"]
    return lat_lo <= place.lat <= lat_hi and lng_lo <= place.lng <= lng_hi


def main(argv: list[str] | None = None) -> int:
    p = argparse.ArgumentParser(description="Validate the ParentMap place catalog (offline).")
    p.add_argument("--catalog", type=str, default="data/places/locations.json")
    args = p.parse_args(argv)

    catalog_path = resolve_project_path(args.catalog)
    if not catalog_path.exists():
        print("Catalog file not found:", catalog_path)
        return 2

    payload = _read_json(catalog_path)
    entries = payload.get("locations") if isinstance(payload, dict) else payload
    if not isinstance(entries, list):
        print("Invalid catalog shape: expected a list or {'locations': [...]}.")
        return 2

    invalid_rows: list[str] = []
    places: list[Place] = []
    for i, entry in enumerate(entries):
        try:
            places.append(Place.model_validate(entry))
        except ValidationError as exc:
            ident = entry.get("id") if isinstance(entry, dict) else None
            invalid_rows.append(f"#{i}({ident or '?'}): {exc.errors()[0].get('msg')}")

    id_counts = Counter(p.id for p in places)
    duplicates = sorted(k for k, n in id_counts.items() if n > 1)
    out_of_bounds = [p.id for p in places if not _in_bounds(p)]
    no_link = [p.id for p in places if p.link_url is None]
    by_category = Counter(p.category for p in places)

    print("Catalog:", catalog_path)
    print("Entries:", len(entries))
    print("Valid places:", len(places))
    print("By category:", ", ".join(f"{k}={v}" for k, v in sorted(by_category.items())))
    print("Without outbound link:", len(no_link))
    if invalid_rows:
        print("Invalid entries:", len(invalid_rows), "example:", "; ".join(invalid_rows[:5]))
    if duplicates:
        print("Duplicate ids:", len(duplicates), "example:", ", ".join(duplicates[:8]))
    if out_of_bounds:
        print("Outside Hong Kong bounds:", len(out_of_bounds), "example:", ", ".join(out_of_bounds[:8]))

    if invalid_rows or duplicates:
        return 2
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
