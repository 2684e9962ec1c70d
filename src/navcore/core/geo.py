from __future__ import annotations

from collections.abc import Mapping
from math import atan2, cos, floor, isfinite, radians, sin, sqrt

from navcore.domain.models import Coordinate, TransportMode

"""
Geospatial helpers.

A tiny geometry layer used by the routing fallback: great-circle distance and a
speed-based travel-time estimate. No GIS dependencies.
"""

EARTH_RADIUS_KM = 6371.0

# Average speeds used when the routing service cannot be asked (or its travel time is
# ignored, see `estimate_duration_text`).
FALLBACK_SPEED_KMH: dict[TransportMode, float] = {
    TransportMode.DRIVING: 40.0,
    TransportMode.BICYCLING: 15.0,
    TransportMode.WALKING: 5.0,
    TransportMode.TRANSIT: 60.0,
}


def haversine_distance_km(a: Coordinate, b: Coordinate) -> float:
    """Compute great-circle distance in kilometers between two points.

    Returns NaN if either point is not finite.
    """
    if not (a.is_finite and b.is_finite):
        return float("nan")
    lat1 = radians(a.latitude)
    lat2 = radians(b.latitude)
    dlat = radians(b.latitude - a.latitude)
    dlon = radians(b.longitude - a.longitude)

    h = sin(dlat / 2) ** 2 + cos(lat1) * cos(lat2) * sin(dlon / 2) ** 2
    # Rounding can push antipodal points just above 1.
    h = min(1.0, h)
    return EARTH_RADIUS_KM * 2 * atan2(sqrt(h), sqrt(1 - h))


def format_duration_minutes(minutes: float) -> str:
    """Format minutes as `N min`, `H hr` or `H hr M min` (never below 1 min)."""
    if not isfinite(minutes):
        raise ValueError(f"Cannot format a non-finite duration: {minutes!r}")
    total = max(1, int(floor(minutes + 0.5)))
    if total < 60:
        return f"{total} min"
    hours, rest = divmod(total, 60)
    return f"{hours} hr" if rest == 0 else f"{hours} hr {rest} min"


def estimate_duration_text(
    distance_km: float,
    mode: TransportMode,
    *,
    speeds_kmh: Mapping[str, float] | None = None,
) -> str:
    """Estimate travel time for `distance_km` at the mode's average speed.

    This is also applied to distances reported by the routing service, so a route shows
    the same kind of duration whether it came from the service or from the fallback.
    """
    mode = TransportMode(mode)
    speed = None
    if speeds_kmh:
        speed = speeds_kmh.get(mode.value)
    if not speed or speed <= 0:
        speed = FALLBACK_SPEED_KMH[mode]
    return format_duration_minutes(distance_km / speed * 60)
