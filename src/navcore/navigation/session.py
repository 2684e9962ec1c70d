"""
Composition root.

Builds one navigation session: service clients, the selection channel, a search
pipeline per query field and the trip planner. The channel is created here and handed
to both the destination search (publisher) and the planner (subscriber).
"""

from __future__ import annotations

from dataclasses import dataclass

from navcore.config.settings import Settings, get_settings
from navcore.events.channel import SelectionChannel
from navcore.ingestion.nominatim_client import NominatimClient
from navcore.ingestion.osrm_client import OsrmRouteProvider
from navcore.navigation.planner import TripPlanner
from navcore.search.pipeline import PlaceSearchPipeline


@dataclass
class NavigationSession:
    channel: SelectionChannel
    router: OsrmRouteProvider
    geocoder: NominatimClient
    start_search: PlaceSearchPipeline
    destination_search: PlaceSearchPipeline
    planner: TripPlanner

    def close(self) -> None:
        self.start_search.cancel()
        self.destination_search.cancel()
        self.planner.close()


def build_session(
    settings: Settings | None = None,
    *,
    router: OsrmRouteProvider | None = None,
    geocoder: NominatimClient | None = None,
) -> NavigationSession:
    settings = settings or get_settings()
    router = router or OsrmRouteProvider(settings)
    geocoder = geocoder or NominatimClient(settings)
    channel = SelectionChannel()
    window = settings.search.debounce_seconds

    planner = TripPlanner(router, geocoder, channel=channel)
    planner.attach()
    return NavigationSession(
        channel=channel,
        router=router,
        geocoder=geocoder,
        # The start field sets the origin directly; only destination picks go on the channel.
        start_search=PlaceSearchPipeline(geocoder, debounce_seconds=window),
        destination_search=PlaceSearchPipeline(geocoder, debounce_seconds=window, channel=channel),
        planner=planner,
    )
