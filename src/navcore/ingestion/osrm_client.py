"""
Routing client (OSRM HTTP API).

This module is responsible for turning (origin, destination, mode) into a `RouteResult`:
- map the transport mode to an OSRM profile,
- request a full-geometry route as a GeoJSON LineString,
- validate the response at the boundary (pydantic),
- fall back to a straight-line estimate whenever the service cannot give a usable route.

`fetch_route` never raises: the fallback path is the error handler.
"""

from __future__ import annotations

import logging
import math
from typing import Any, Literal

import httpx
from pydantic import BaseModel, Field, ValidationError

from navcore.config.settings import Settings
from navcore.core.errors import MalformedResponseError
from navcore.core.geo import estimate_duration_text, haversine_distance_km
from navcore.core.http import get_json
from navcore.domain.models import Coordinate, RouteResult, TransportMode

logger = logging.getLogger(__name__)


class OsrmLeg(BaseModel):
    summary: str = ""


class OsrmGeometry(BaseModel):
    type: Literal["LineString"]
    coordinates: list[tuple[float, float]]


class OsrmRoute(BaseModel):
    distance: float = Field(0.0, ge=0, allow_inf_nan=False)
    # Validated separately: a broken geometry degrades to a straight segment, not a fallback.
    geometry: Any = None
    legs: list[OsrmLeg] = Field(default_factory=list)


class OsrmRouteResponse(BaseModel):
    code: str | None = None
    routes: list[OsrmRoute] = Field(default_factory=list)


def build_fallback_route(
    origin: Coordinate,
    destination: Coordinate,
    mode: TransportMode,
    *,
    speeds_kmh: dict[str, float] | None = None,
) -> RouteResult:
    """Straight-line route with haversine distance and a speed-based duration.

    A non-finite endpoint has no measurable distance; the route then reports 0 km.
    """
    mode = TransportMode(mode)
    distance_km = haversine_distance_km(origin, destination)
    if not math.isfinite(distance_km):
        logger.warning("Cannot measure a route with a non-finite endpoint; reporting 0 km")
        distance_km = 0.0
    return RouteResult(
        coordinates=[origin, destination],
        distance_km=distance_km,
        duration_text=estimate_duration_text(distance_km, mode, speeds_kmh=speeds_kmh),
        summary=f"Approximate {mode.value} route (fallback)",
        source="fallback",
    )


def decode_geometry(raw: Any) -> list[Coordinate] | None:
    """Decode a GeoJSON LineString (`[lon, lat]` pairs); None if absent or malformed."""
    if raw is None:
        return None
    try:
        geometry = OsrmGeometry.model_validate(raw)
    except ValidationError:
        return None
    return [Coordinate(latitude=lat, longitude=lon) for lon, lat in geometry.coordinates]


class OsrmRouteProvider:
    """Fetches routes from OSRM and degrades to `build_fallback_route` on any failure."""

    def __init__(self, settings: Settings, *, transport: httpx.AsyncBaseTransport | None = None):
        self._settings = settings
        self._transport = transport

    def profile_for(self, mode: TransportMode) -> str:
        """Return the OSRM profile serving `mode` (transit rides the driving network)."""
        mode = TransportMode(mode)
        return self._settings.routing.profiles.get(mode.value, "driving")

    def _route_url(self, origin: Coordinate, destination: Coordinate, profile: str) -> str:
        base_url = self._settings.routing.base_url.rstrip("/")
        coords = (
            f"{origin.longitude},{origin.latitude};"
            f"{destination.longitude},{destination.latitude}"
        )
        return f"{base_url}/route/v1/{profile}/{coords}"

    async def _fetch_osrm(self, origin: Coordinate, destination: Coordinate, profile: str) -> OsrmRouteResponse:
        """Call the OSRM route endpoint and return the validated response."""
        payload = await get_json(
            self._route_url(origin, destination, profile),
            params={"overview": "full", "geometries": "geojson"},
            headers={"User-Agent": self._settings.app.user_agent},
            timeout_seconds=self._settings.app.http_timeout_seconds,
            transport=self._transport,
        )
        try:
            return OsrmRouteResponse.model_validate(payload)
        except ValidationError as e:
            raise MalformedResponseError(f"Unexpected OSRM response: {e.error_count()} error(s)") from e

    def fallback(self, origin: Coordinate, destination: Coordinate, mode: TransportMode) -> RouteResult:
        return build_fallback_route(
            origin, destination, mode, speeds_kmh=self._settings.routing.fallback_speed_kmh
        )

    async def fetch_route(
        self, origin: Coordinate, destination: Coordinate, mode: TransportMode
    ) -> RouteResult:
        """Return the best available route between two points; never raises."""
        mode = TransportMode(mode)
        if origin == destination:
            logger.debug("Origin equals destination; skipping routing service")
            return self.fallback(origin, destination, mode)
        if not (origin.is_finite and destination.is_finite):
            logger.debug("Non-finite route endpoint; skipping routing service")
            return self.fallback(origin, destination, mode)

        profile = self.profile_for(mode)
        try:
            response = await self._fetch_osrm(origin, destination, profile)
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("OSRM request failed (%s: %s); using fallback route", type(e).__name__, e)
            return self.fallback(origin, destination, mode)

        if not response.routes:
            logger.warning("OSRM returned no routes (code=%s); using fallback route", response.code)
            return self.fallback(origin, destination, mode)

        route = response.routes[0]
        distance_km = route.distance / 1000

        coordinates = decode_geometry(route.geometry)
        if not coordinates or len(coordinates) < 2:
            coordinates = [origin, destination]

        summary = route.legs[0].summary if route.legs else ""
        return RouteResult(
            coordinates=coordinates,
            distance_km=distance_km,
            duration_text=estimate_duration_text(
                distance_km, mode, speeds_kmh=self._settings.routing.fallback_speed_kmh
            ),
            summary=summary or f"Route via {profile}",
            source="service",
        )
