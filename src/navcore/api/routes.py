"""
API routes.

Endpoints:
- GET `/api/health`: liveness check.
- GET `/api/route`: route between two points for a transport mode (falls back offline).
- GET `/api/search`: place search candidates for free text.
- GET `/api/reverse`: short name + address for a point.
- GET `/api/nearby`: restaurants, cafes or ATMs around a point.
"""

from __future__ import annotations

from functools import lru_cache

from fastapi import APIRouter, Query

from navcore.config.settings import get_settings
from navcore.domain.models import Coordinate, NamedPlace, PoiCategory, RouteResult, SearchResult, TransportMode
from navcore.ingestion.nominatim_client import NominatimClient
from navcore.ingestion.osrm_client import OsrmRouteProvider

router = APIRouter()


@lru_cache
def _clients() -> tuple[OsrmRouteProvider, NominatimClient]:
    settings = get_settings()
    return OsrmRouteProvider(settings), NominatimClient(settings)


@router.get("/api/health")
def get_health() -> dict:
    return {"status": "ok", "name": get_settings().app.name}


@router.get("/api/route", response_model=RouteResult)
async def get_route(
    origin_lat: float = Query(..., ge=-90, le=90),
    origin_lon: float = Query(..., ge=-180, le=180),
    dest_lat: float = Query(..., ge=-90, le=90),
    dest_lon: float = Query(..., ge=-180, le=180),
    mode: TransportMode = TransportMode.DRIVING,
) -> RouteResult:
    """Return the best available route; never fails because of the routing service."""
    provider, _ = _clients()
    return await provider.fetch_route(
        Coordinate(latitude=origin_lat, longitude=origin_lon),
        Coordinate(latitude=dest_lat, longitude=dest_lon),
        mode,
    )


@router.get("/api/search")
async def get_search(q: str = Query("", max_length=256)) -> dict[str, list[SearchResult]]:
    """Return place candidates for `q` (empty for short queries or service failures).

    Candidates whose coordinates did not parse are left out: JSON cannot carry NaN.
    """
    _, geocoder = _clients()
    results = await geocoder.search(q)
    return {"results": [r for r in results if r.coordinate.is_finite]}


@router.get("/api/reverse", response_model=NamedPlace)
async def get_reverse(
    lat: float = Query(..., ge=-90, le=90),
    lon: float = Query(..., ge=-180, le=180),
) -> NamedPlace:
    """Describe a point; falls back to a sentinel name when geocoding fails."""
    _, geocoder = _clients()
    return await geocoder.reverse_geocode(Coordinate(latitude=lat, longitude=lon))


@router.get("/api/nearby")
async def get_nearby(
    lat: float = Query(..., ge=-90, le=90),
    lon: float = Query(..., ge=-180, le=180),
    category: PoiCategory = PoiCategory.RESTAURANT,
) -> dict[str, list[SearchResult]]:
    """List points of interest around a point (empty when the service fails)."""
    _, geocoder = _clients()
    results = await geocoder.search_nearby(Coordinate(latitude=lat, longitude=lon), category)
    return {"results": [r for r in results if r.coordinate.is_finite]}
