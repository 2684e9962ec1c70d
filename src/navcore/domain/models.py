"""
Domain models (Pydantic).

These types are the values exchanged between search, geocoding, route computation
and the outer surfaces (API/CLI):
- `Coordinate` / `NamedPlace`: where the user is going
- `TransportMode`: how they get there
- `RouteResult` / `SearchResult`: what the external services (or local fallbacks) produce

All of them are frozen: they are passed by value and never mutated after creation.
"""

from __future__ import annotations

import math
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


class TransportMode(str, Enum):
    """How the user travels; selects both the routing profile and the fallback speed."""

    DRIVING = "driving"
    BICYCLING = "bicycling"
    WALKING = "walking"
    TRANSIT = "transit"


class LocationStatus(str, Enum):
    """State of the device location fix, kept apart from network failures."""

    UNKNOWN = "unknown"
    GRANTED = "granted"
    DENIED = "denied"
    UNAVAILABLE = "unavailable"


class PoiCategory(str, Enum):
    """Kinds of points of interest that can be listed around the current trip."""

    RESTAURANT = "restaurant"
    CAFE = "cafe"
    ATM = "atm"


class Coordinate(BaseModel):
    """A latitude/longitude pair in decimal degrees.

    Range checks are left to the API layer: search results with malformed numeric
    fields carry `NaN` here, and callers check `is_finite` before using them.
    """

    model_config = ConfigDict(frozen=True)

    latitude: float
    longitude: float

    @property
    def is_finite(self) -> bool:
        return math.isfinite(self.latitude) and math.isfinite(self.longitude)


class NamedPlace(BaseModel):
    """A coordinate annotated with a short display name and a full address."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1)
    address: str
    coordinate: Coordinate


class RouteResult(BaseModel):
    """A fully populated route, from the routing service or the local fallback."""

    model_config = ConfigDict(frozen=True)

    coordinates: list[Coordinate] = Field(..., min_length=2)
    distance_km: float = Field(..., ge=0)
    duration_text: str
    summary: str
    source: Literal["service", "fallback"] = "service"

    @property
    def is_fallback(self) -> bool:
        return self.source == "fallback"


class SearchResult(BaseModel):
    """One place-search candidate."""

    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    address: str
    coordinate: Coordinate

    @field_validator("title")
    @classmethod
    def _strip_title(cls, title: str) -> str:
        return title.strip()

    def to_place(self) -> NamedPlace:
        """Convert to the `NamedPlace` published when the user picks this result."""
        return NamedPlace(
            name=self.title or self.address or "Nearby Area",
            address=self.address,
            coordinate=self.coordinate,
        )
