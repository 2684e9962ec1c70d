"""
Trip planner: the state behind the map screen.

Holds origin, destination, transport mode and the latest route, and decides when to ask
the route provider again:
- a place selected on the `SelectionChannel` becomes the destination,
- a map long-press is reverse geocoded into the destination,
- changing mode or swapping ends re-routes without a new search.

A new destination also clears any nearby points of interest listed around the old one.

Route requests are tagged with a sequence number; a response is only kept if no newer
request was started while it was in flight.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Protocol

from navcore.domain.models import (
    Coordinate,
    LocationStatus,
    NamedPlace,
    PoiCategory,
    RouteResult,
    SearchResult,
    TransportMode,
)
from navcore.events.channel import SelectionChannel, Unsubscribe

logger = logging.getLogger(__name__)

YOUR_LOCATION = "Your location"


class RouteProvider(Protocol):
    async def fetch_route(
        self, origin: Coordinate, destination: Coordinate, mode: TransportMode
    ) -> RouteResult: ...


class ReverseGeocoder(Protocol):
    async def reverse_geocode(self, coordinate: Coordinate) -> NamedPlace: ...


class NearbySearcher(Protocol):
    async def search_nearby(self, center: Coordinate, category: PoiCategory) -> list[SearchResult]: ...


class Geocoder(ReverseGeocoder, NearbySearcher, Protocol):
    pass


class TripPlanner:
    def __init__(
        self,
        route_provider: RouteProvider,
        geocoder: Geocoder,
        *,
        channel: SelectionChannel | None = None,
        mode: TransportMode = TransportMode.DRIVING,
        on_route: Callable[[RouteResult], None] | None = None,
    ):
        self._route_provider = route_provider
        self._geocoder = geocoder
        self._channel = channel
        self._on_route = on_route
        self._unsubscribe: Unsubscribe | None = None
        self._seq = 0
        self._tasks: set[asyncio.Task[RouteResult | None]] = set()

        self.mode = TransportMode(mode)
        self.origin: NamedPlace | None = None
        self.destination: NamedPlace | None = None
        self.route: RouteResult | None = None
        self.location_status = LocationStatus.UNKNOWN
        self.loading = False
        self._poi_seq = 0
        self.poi_category: PoiCategory | None = None
        self.poi_results: list[SearchResult] = []

    # Lifecycle

    def attach(self) -> None:
        """Start listening for selected places (no-op without a channel)."""
        if self._channel is None or self._unsubscribe is not None:
            return
        self._unsubscribe = self._channel.subscribe(self._on_place_selected)

    def close(self) -> None:
        """Release the channel subscription and ignore routes still in flight."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self._seq += 1
        for task in list(self._tasks):
            task.cancel()

    async def __aenter__(self) -> "TripPlanner":
        self.attach()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        self.close()

    def _on_place_selected(self, place: NamedPlace) -> None:
        self.destination = place
        self.clear_poi()
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No loop (e.g. selection replayed from sync code): route on the next refresh.
            return
        task = loop.create_task(self.refresh())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    # Inputs

    async def use_current_location(self, coordinate: Coordinate | None, status: LocationStatus) -> None:
        """Make the device location the origin if it is available."""
        self.location_status = LocationStatus(status)
        if self.location_status is not LocationStatus.GRANTED or coordinate is None:
            if self.location_status is LocationStatus.GRANTED:
                self.location_status = LocationStatus.UNAVAILABLE
            logger.info("Current location not usable (%s)", self.location_status.value)
            return

        try:
            place = await self._geocoder.reverse_geocode(coordinate)
        except Exception as e:
            logger.warning("Could not name current location (%s)", e)
            place = NamedPlace(name=YOUR_LOCATION, address=YOUR_LOCATION, coordinate=coordinate)
        self.origin = place
        await self.refresh()

    async def set_origin(self, place: NamedPlace) -> RouteResult | None:
        self.origin = place
        return await self.refresh()

    async def set_destination(self, place: NamedPlace) -> RouteResult | None:
        self.destination = place
        self.clear_poi()
        return await self.refresh()

    async def select_point(self, coordinate: Coordinate) -> RouteResult | None:
        """Use a map point as the destination, named by reverse geocoding."""
        self.destination = await self._geocoder.reverse_geocode(coordinate)
        self.clear_poi()
        return await self.refresh()

    async def set_mode(self, mode: TransportMode) -> RouteResult | None:
        self.mode = TransportMode(mode)
        return await self.refresh()

    async def swap(self) -> RouteResult | None:
        """Exchange origin and destination; requires both to be set."""
        if self.origin is None or self.destination is None:
            return None
        self.origin, self.destination = self.destination, self.origin
        return await self.refresh()

    # Nearby points of interest

    def clear_poi(self) -> None:
        self._poi_seq += 1
        self.poi_category = None
        self.poi_results = []

    async def toggle_poi_category(self, category: PoiCategory) -> list[SearchResult]:
        """Show points of interest of `category` around the trip, or hide them if already shown.

        The search is centred on the destination, or on the origin when no destination is
        set yet. A response is dropped if the selection changed while it was in flight.
        """
        category = PoiCategory(category)
        if self.poi_category is category:
            self.clear_poi()
            return []

        self._poi_seq += 1
        seq = self._poi_seq
        self.poi_category = category
        self.poi_results = []
        anchor = self.destination or self.origin
        if anchor is None:
            return []

        results = await self._geocoder.search_nearby(anchor.coordinate, category)
        if seq != self._poi_seq:
            logger.debug("Dropping stale nearby %s results", category.value)
            return []
        self.poi_results = list(results)
        return self.poi_results

    # Routing

    def can_route(self) -> bool:
        if self.origin is None or self.destination is None:
            return False
        a, b = self.origin.coordinate, self.destination.coordinate
        return a.is_finite and b.is_finite and a != b

    async def refresh(self) -> RouteResult | None:
        """Recompute the route for the current inputs; None if skipped or superseded."""
        origin, destination = self.origin, self.destination
        if origin is None or destination is None or not self.can_route():
            return None

        self._seq += 1
        seq = self._seq
        self.loading = True
        result = await self._route_provider.fetch_route(origin.coordinate, destination.coordinate, self.mode)
        if seq != self._seq:
            logger.debug("Dropping stale route response (seq=%d, latest=%d)", seq, self._seq)
            return None

        self.loading = False
        self.route = result
        if self._on_route is not None:
            self._on_route(result)
        return result
