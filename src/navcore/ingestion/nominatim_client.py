"""
Place search + reverse geocoding client (Nominatim).

Three operations, all shaped for the UI:
- `search(text)`: free text -> up to `search.limit` `SearchResult` candidates
- `reverse_geocode(coordinate)`: a point -> `NamedPlace` with a short, human name
- `search_nearby(center, category)`: restaurants, cafes or ATMs in a small box around a point

All are total. Failures degrade to an empty list or a sentinel place; the raising
variant `search_places` exists for callers (the search pipeline) that need to tell an
empty answer apart from a failed one.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from navcore.config.settings import Settings
from navcore.core.errors import GeocodingError, MalformedResponseError
from navcore.core.http import get_json
from navcore.core.rate_limit import TokenBucketRateLimiter
from navcore.domain.models import Coordinate, NamedPlace, PoiCategory, SearchResult

logger = logging.getLogger(__name__)

NEARBY_AREA = "Nearby Area"
NEAREST_LOCATION = "Nearest location"

# Address fields, highest priority first, for the short name of a reverse-geocoded point.
POI_FIELDS = ("attraction", "building", "cafe", "shop", "office", "public_building")
AREA_FIELDS = ("neighbourhood", "suburb", "village", "town", "city")
ROAD_FIELDS = ("road", "street", "residential")


class NominatimPlace(BaseModel):
    model_config = ConfigDict(extra="ignore")

    display_name: str | None = None
    # Null or non-numeric coordinates parse to NaN per item instead of failing the list.
    lat: Any = None
    lon: Any = None


class NominatimReverse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str | None = None
    display_name: str | None = None
    address: dict[str, Any] = Field(default_factory=dict)


def parse_coordinate_value(value: Any) -> float:
    """Parse a numeric string; malformed input becomes NaN rather than an error."""
    try:
        return float(value)
    except (TypeError, ValueError):
        return float("nan")


def _first_present(address: dict[str, Any], fields: tuple[str, ...]) -> str | None:
    for field in fields:
        value = address.get(field)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def pick_place_name(name: str | None, address: dict[str, Any]) -> str:
    """Choose a short label: point of interest > neighbourhood/locality > street > sentinel."""
    poi = name.strip() if name and name.strip() else _first_present(address, POI_FIELDS)
    return poi or _first_present(address, AREA_FIELDS) or _first_present(address, ROAD_FIELDS) or NEARBY_AREA


def to_search_results(items: list[NominatimPlace], *, default_title: str = "") -> list[SearchResult]:
    """Shape raw candidates: title is the first comma segment of the display name."""
    results = []
    for index, item in enumerate(items):
        display_name = item.display_name or ""
        results.append(
            SearchResult(
                id=str(index),
                title=display_name.split(",")[0].strip() or default_title,
                address=display_name,
                coordinate=Coordinate(
                    latitude=parse_coordinate_value(item.lat),
                    longitude=parse_coordinate_value(item.lon),
                ),
            )
        )
    return results


class NominatimClient:
    """Nominatim API client with client-side rate limiting."""

    def __init__(
        self,
        settings: Settings,
        *,
        rate_limiter: TokenBucketRateLimiter | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._settings = settings
        self._transport = transport
        self._rate_limiter = rate_limiter
        rpm = settings.search.max_requests_per_minute
        if self._rate_limiter is None and rpm > 0:
            self._rate_limiter = TokenBucketRateLimiter(max_per_minute=rpm, burst=1)

    def set_rate_limiter(self, limiter: TokenBucketRateLimiter | None) -> None:
        self._rate_limiter = limiter

    @property
    def min_query_length(self) -> int:
        return self._settings.search.min_query_length

    async def _nominatim_get_json(self, path: str, params: dict[str, Any]) -> Any:
        if self._rate_limiter is not None:
            await self._rate_limiter.acquire()
        base_url = self._settings.search.base_url.rstrip("/")
        return await get_json(
            f"{base_url}/{path}",
            params=params,
            headers={"User-Agent": self._settings.app.user_agent},
            timeout_seconds=self._settings.app.http_timeout_seconds,
            transport=self._transport,
        )

    async def search_places(self, text: str) -> list[SearchResult]:
        """Search free text; raises `GeocodingError` if the service fails.

        Queries shorter than `search.min_query_length` return [] without a request.
        """
        query = (text or "").strip()
        if len(query) < self.min_query_length:
            return []

        params = {
            "q": query,
            "format": "json",
            "addressdetails": 1,
            "limit": self._settings.search.limit,
        }
        try:
            payload = await self._nominatim_get_json("search", params)
            if not isinstance(payload, list):
                raise MalformedResponseError("Nominatim search did not return a list")
            items = [NominatimPlace.model_validate(item) for item in payload]
        except ValidationError as e:
            raise GeocodingError(f"Unexpected search result shape for {query!r}") from e
        except (httpx.HTTPError, ValueError) as e:
            raise GeocodingError(f"Place search failed for {query!r}: {e}") from e

        logger.debug("Nominatim returned %d candidate(s) for %r", len(items), query)
        return to_search_results(items)

    async def search(self, text: str) -> list[SearchResult]:
        """Search free text; returns [] on failure."""
        try:
            return await self.search_places(text)
        except GeocodingError as e:
            logger.warning("%s; returning no results", e)
            return []

    def nearby_viewbox(self, center: Coordinate) -> str:
        """`x1,y1,x2,y2` box (lon/lat corners) of `search.nearby_delta_degrees` around `center`."""
        d = self._settings.search.nearby_delta_degrees
        lat, lon = center.latitude, center.longitude
        return f"{lon - d},{lat - d},{lon + d},{lat + d}"

    async def search_nearby(self, center: Coordinate, category: PoiCategory | str) -> list[SearchResult]:
        """List points of interest of `category` in a small box around `center`.

        Returns [] on failure or when `center` is not a usable coordinate.
        """
        category = PoiCategory(category)
        if not center.is_finite:
            return []

        params = {
            "q": category.value,
            "format": "json",
            "limit": self._settings.search.nearby_limit,
            "viewbox": self.nearby_viewbox(center),
            "bounded": 1,
        }
        try:
            payload = await self._nominatim_get_json("search", params)
            if not isinstance(payload, list):
                raise MalformedResponseError("Nominatim search did not return a list")
            items = [NominatimPlace.model_validate(item) for item in payload]
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Nearby %s search failed (%s); returning no results", category.value, e)
            return []

        logger.debug("Nominatim returned %d nearby %s(s)", len(items), category.value)
        return to_search_results(items, default_title=category.value)

    async def reverse_geocode(self, coordinate: Coordinate) -> NamedPlace:
        """Describe `coordinate`; returns a sentinel place if the service fails."""
        lat, lon = coordinate.latitude, coordinate.longitude
        params = {
            "lat": lat,
            "lon": lon,
            "format": "json",
            "addressdetails": 1,
            "zoom": self._settings.search.reverse_zoom,
        }
        try:
            payload = await self._nominatim_get_json("reverse", params)
            data = NominatimReverse.model_validate(payload)
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Reverse geocoding failed for %.5f,%.5f (%s)", lat, lon, e)
            return NamedPlace(name=NEAREST_LOCATION, address=f"{lat:.4f}, {lon:.4f}", coordinate=coordinate)

        return NamedPlace(
            name=pick_place_name(data.name, data.address),
            address=data.display_name or f"{lat}, {lon}",
            coordinate=coordinate,
        )
