"""
ParentMap CLI entrypoint.

This CLI is intended for quick local demos and debugging without a frontend.
It delegates filtering/sorting to `parentmap.browse.pipeline.browse_places` and
live data lookups to the ingestion clients.
"""

from __future__ import annotations

import argparse
import json
from typing import Any

from parentmap.browse.pipeline import browse_places, build_cache
from parentmap.catalog.loader import load_places
from parentmap.config.settings import get_settings
from parentmap.core.geo import GeoPoint
from parentmap.core.logging import configure_logging
from parentmap.core.time import format_forecast_time
from parentmap.domain.models import PRICE_SYMBOLS, FilterSpec
from parentmap.features.carparks import height_limit_m, nearby_carparks
from parentmap.features.rainfall import describe_rainfall, forecast_timeline, rainfall_at_location
from parentmap.features.sorting import SORT_MODES
from parentmap.ingestion.carpark_client import CarparkClient
from parentmap.ingestion.rainfall_client import RainfallClient


def _optional_point(lat: float | None, lng: float | None) -> GeoPoint | None:
    if lat is None and lng is None:
        return None
    if lat is None or lng is None:
        raise ValueError("--lat and --lng must be given together")
    return GeoPoint(lat=lat, lng=lng)


def _cmd_places(args: argparse.Namespace) -> int:
    """Handle the `places` subcommand."""
    settings = get_settings()
    places = load_places(args.catalog or settings.catalog.path)

    spec = FilterSpec(
        regions=args.region,
        categories=args.category,
        ages=args.age,
        prices=args.price,
        indoor=args.indoor,
        query=args.query or "",
        favorites_only=bool(args.favorite),
        favorites=set(args.favorite),
    )
    result = browse_places(
        places,
        spec,
        settings=settings,
        center=_optional_point(args.lat, args.lng),
        radius_km=args.radius_km,
        sort=args.sort,
        reference=_optional_point(args.user_lat, args.user_lng),
        limit=args.limit,
    )

    if args.json:
        print(json.dumps(result.model_dump(mode="json", by_alias=True), ensure_ascii=False, indent=2))
        return 0

    print(f"{result.total} place(s) within {result.radius_km:g}km of {result.center['lat']:.4f},{result.center['lng']:.4f}")
    for i, item in enumerate(result.items, start=1):
        p = item.place
        print(
            f"{i:>2}. {p.name} ({p.district})  {p.category_label}  {PRICE_SYMBOLS[p.price_type]}"
            f"  {item.distance_display or '-'}  {item.walking_display or ''}"
        )
    return 0


def _cmd_rainfall(args: argparse.Namespace) -> int:
    settings = get_settings()
    point = GeoPoint(lat=args.lat, lng=args.lng)
    cells = RainfallClient(settings, build_cache(settings)).get_cells()

    match = rainfall_at_location(cells, point, settings=settings)
    timeline = forecast_timeline(cells, point, settings=settings)

    if args.json:
        payload: dict[str, Any] = {
            "nowcast": None,
            "timeline": [
                {"start": m.record.start_time, "end": m.record.end_time, "rainfall_mm": m.record.rainfall_mm}
                for m in timeline
            ],
        }
        if match is not None:
            payload["nowcast"] = {
                "start": match.record.start_time,
                "end": match.record.end_time,
                "rainfall_mm": match.record.rainfall_mm,
                "level": describe_rainfall(match.record.rainfall_mm).level,
                "grid_distance_km": match.distance_km,
            }
        print(json.dumps(payload, ensure_ascii=False, indent=2))
        return 0

    if match is None:
        print("No rainfall nowcast for this location.")
        return 0
    for m in timeline:
        desc = describe_rainfall(m.record.rainfall_mm)
        print(
            f"{format_forecast_time(m.record.start_time)}-{format_forecast_time(m.record.end_time)}"
            f"  {m.record.rainfall_mm:.1f}mm  {desc.text} ({desc.level})"
        )
    return 0


def _cmd_carparks(args: argparse.Namespace) -> int:
    settings = get_settings()
    point = GeoPoint(lat=args.lat, lng=args.lng)
    carparks = CarparkClient(settings, build_cache(settings)).get_carparks()
    nearby = nearby_carparks(
        carparks, point, settings=settings, radius_km=args.radius_km, max_results=args.max_results
    )

    if args.json:
        rows = [
            {
                "park_id": n.carpark.park_id,
                "name": n.carpark.name,
                "distance_km": n.distance_km,
                "vacancy": n.carpark.vacancy.vacancy if n.carpark.vacancy else None,
                "vacancy_status": n.vacancy_status,
                "height_limit_m": height_limit_m(n.carpark),
            }
            for n in nearby
        ]
        print(json.dumps(rows, ensure_ascii=False, indent=2))
        return 0

    if not nearby:
        print("No carparks nearby.")
        return 0
    for i, n in enumerate(nearby, start=1):
        vacancy = n.carpark.vacancy.vacancy if n.carpark.vacancy else None
        height = height_limit_m(n.carpark)
        print(
            f"{i:>2}. {n.carpark.name}  {n.distance_display}  {n.walking_display}"
            f"  vacancy={vacancy if vacancy is not None else '?'} ({n.vacancy_status})"
            + (f"  height<={height:g}m" if height else "")
        )
    return 0


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the ParentMap CLI."""
    parser = argparse.ArgumentParser(prog="parentmap")
    parser.add_argument("--log-level", dest="log_level", default=None, help="Overrides settings app.log_level")
    sub = parser.add_subparsers(dest="command", required=True)

    pl = sub.add_parser("places", help="Filter and sort venues around a center point.")
    pl.add_argument("--catalog", type=str, default=None, help="Catalog JSON path (defaults to settings).")
    pl.add_argument("--region", action="append", default=[], help="Repeatable; substring of district.")
    pl.add_argument(
        "--category",
        action="append",
        default=[],
        choices=["playhouse", "park", "museum", "restaurant", "library"],
    )
    pl.add_argument("--age", action="append", default=[], help="Repeatable age bucket, e.g. 0-1, 3-6, 12+")
    pl.add_argument("--price", action="append", default=[], choices=["free", "low", "medium", "high"])
    pl.add_argument("--indoor", choices=["all", "indoor", "outdoor"], default="all")
    pl.add_argument("--query", type=str, default=None)
    pl.add_argument("--favorite", action="append", default=[], help="Repeatable place id; implies favorites-only.")
    pl.add_argument("--lat", type=float, default=None, help="List center latitude")
    pl.add_argument("--lng", type=float, default=None, help="List center longitude")
    pl.add_argument("--user-lat", dest="user_lat", type=float, default=None)
    pl.add_argument("--user-lng", dest="user_lng", type=float, default=None)
    pl.add_argument("--radius-km", dest="radius_km", type=float, default=None)
    pl.add_argument("--sort", choices=list(SORT_MODES), default=None)
    pl.add_argument("--limit", type=int, default=None)
    pl.add_argument("--json", action="store_true", help="Output machine-readable JSON")
    pl.set_defaults(func=_cmd_places)

    rf = sub.add_parser("rainfall", help="Rainfall nowcast at a location (HKO grid).")
    rf.add_argument("--lat", required=True, type=float)
    rf.add_argument("--lng", required=True, type=float)
    rf.add_argument("--json", action="store_true")
    rf.set_defaults(func=_cmd_rainfall)

    cp = sub.add_parser("carparks", help="Nearby carparks with live vacancy.")
    cp.add_argument("--lat", required=True, type=float)
    cp.add_argument("--lng", required=True, type=float)
    cp.add_argument("--radius-km", dest="radius_km", type=float, default=None)
    cp.add_argument("--max-results", dest="max_results", type=int, default=None)
    cp.add_argument("--json", action="store_true")
    cp.set_defaults(func=_cmd_carparks)
    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entrypoint callable used by `python -m parentmap.cli`."""
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level)
    func: Any = getattr(args, "func")
    try:
        return int(func(args))
    except ValueError as exc:
        # Bad filter labels, coordinates or catalog JSON; exits with status 2.
        parser.error(str(exc))


if __name__ == "__main__":
    raise SystemExit(main())
