"""
navcore CLI entrypoint.

This CLI is intended for quick local demos and debugging without a map UI.
It delegates all logic to the service clients in `navcore.ingestion`.
"""

from __future__ import annotations

import argparse
import asyncio
import json
from typing import Any

from navcore.config.settings import get_settings
from navcore.core.logging import configure_logging
from navcore.domain.models import Coordinate, PoiCategory, SearchResult, TransportMode
from navcore.ingestion.nominatim_client import NominatimClient
from navcore.ingestion.osrm_client import OsrmRouteProvider


def _parse_point(value: str) -> Coordinate:
    """Parse `LAT,LON` into a `Coordinate`."""
    try:
        lat_s, lon_s = value.split(",", 1)
        return Coordinate(latitude=float(lat_s), longitude=float(lon_s))
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"Invalid point '{value}', expected LAT,LON") from e


def _print_json(payload: Any) -> None:
    print(json.dumps(payload, ensure_ascii=False, indent=2))


def _cmd_route(args: argparse.Namespace) -> int:
    """Handle the `route` subcommand."""
    provider = OsrmRouteProvider(get_settings())
    if args.offline:
        result = provider.fallback(args.origin, args.destination, args.mode)
    else:
        result = asyncio.run(provider.fetch_route(args.origin, args.destination, args.mode))

    if args.json:
        _print_json(result.model_dump(mode="json"))
        return 0

    print(f"{result.summary}")
    print(f"  distance: {result.distance_km:.2f} km")
    print(f"  duration: {result.duration_text}")
    print(f"  points:   {len(result.coordinates)}")
    return 0


def _print_results(results: list[SearchResult], *, as_json: bool) -> None:
    if as_json:
        _print_json([r.model_dump(mode="json") for r in results if r.coordinate.is_finite])
        return

    if not results:
        print("No results.")
        return
    for i, r in enumerate(results, start=1):
        c = r.coordinate
        print(f"{i:>2}. {r.title}  ({c.latitude:.5f}, {c.longitude:.5f})")
        print(f"    {r.address}")


def _cmd_search(args: argparse.Namespace) -> int:
    client = NominatimClient(get_settings())
    _print_results(asyncio.run(client.search(args.query)), as_json=args.json)
    return 0


def _cmd_nearby(args: argparse.Namespace) -> int:
    client = NominatimClient(get_settings())
    _print_results(asyncio.run(client.search_nearby(args.point, args.category)), as_json=args.json)
    return 0


def _cmd_reverse(args: argparse.Namespace) -> int:
    client = NominatimClient(get_settings())
    place = asyncio.run(client.reverse_geocode(args.point))

    if args.json:
        _print_json(place.model_dump(mode="json"))
        return 0

    print(place.name)
    print(f"  {place.address}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the navcore CLI."""
    parser = argparse.ArgumentParser(prog="navcore")
    sub = parser.add_subparsers(dest="command", required=True)

    route = sub.add_parser("route", help="Route between two points (falls back to a straight-line estimate).")
    route.add_argument("--from", dest="origin", type=_parse_point, required=True, help="LAT,LON")
    route.add_argument("--to", dest="destination", type=_parse_point, required=True, help="LAT,LON")
    route.add_argument(
        "--mode",
        type=TransportMode,
        default=TransportMode.DRIVING,
        choices=list(TransportMode),
        metavar="{" + ",".join(m.value for m in TransportMode) + "}",
    )
    route.add_argument("--offline", action="store_true", help="Skip the routing service entirely.")
    route.add_argument("--json", action="store_true", help="Output machine-readable JSON")
    route.set_defaults(func=_cmd_route)

    search = sub.add_parser("search", help="Free-text place search.")
    search.add_argument("query")
    search.add_argument("--json", action="store_true", help="Output machine-readable JSON")
    search.set_defaults(func=_cmd_search)

    reverse = sub.add_parser("reverse", help="Describe a point (reverse geocoding).")
    reverse.add_argument("point", type=_parse_point, help="LAT,LON")
    reverse.add_argument("--json", action="store_true", help="Output machine-readable JSON")
    reverse.set_defaults(func=_cmd_reverse)

    nearby = sub.add_parser("nearby", help="Points of interest around a point.")
    nearby.add_argument("point", type=_parse_point, help="LAT,LON")
    nearby.add_argument(
        "--category",
        type=PoiCategory,
        default=PoiCategory.RESTAURANT,
        choices=list(PoiCategory),
        metavar="{" + ",".join(c.value for c in PoiCategory) + "}",
    )
    nearby.add_argument("--json", action="store_true", help="Output machine-readable JSON")
    nearby.set_defaults(func=_cmd_nearby)
    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entrypoint callable used by `python -m navcore.cli`."""
    configure_logging()
    parser = build_parser()
    args = parser.parse_args(argv)
    func: Any = getattr(args, "func")
    return int(func(args))


if __name__ == "__main__":
    raise SystemExit(main())
