"""
Debounced place-search pipeline.

One `PlaceSearchPipeline` backs one query field (e.g. "start" or "destination"):

    IDLE -> DEBOUNCING -> SEARCHING -> RESULTS | EMPTY | FAILED
              ^--------------- every keystroke ---------------'

- Text shorter than the minimum length clears results and returns to IDLE at once.
- Keystrokes inside the debounce window reset the timer; only the latest text is searched.
- Every issued request gets a sequence number; a response that is not from the most
  recently issued request is dropped.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from enum import Enum
from typing import Protocol

from navcore.core.debounce import debounce
from navcore.core.errors import GeocodingError
from navcore.domain.models import NamedPlace, SearchResult
from navcore.events.channel import SelectionChannel

logger = logging.getLogger(__name__)


class SearchState(str, Enum):
    IDLE = "idle"
    DEBOUNCING = "debouncing"
    SEARCHING = "searching"
    RESULTS = "results"
    EMPTY = "empty"
    FAILED = "failed"


class PlaceSearcher(Protocol):
    min_query_length: int

    async def search_places(self, text: str) -> list[SearchResult]: ...


class PlaceSearchPipeline:
    """Per-field search state machine on top of a `PlaceSearcher`."""

    def __init__(
        self,
        searcher: PlaceSearcher,
        *,
        debounce_seconds: float,
        channel: SelectionChannel | None = None,
        on_change: Callable[["PlaceSearchPipeline"], None] | None = None,
    ):
        self._searcher = searcher
        self._channel = channel
        self._on_change = on_change
        self._debouncer = debounce(self._run_search, debounce_seconds)
        self._seq = 0
        self._issued = 0
        self.state = SearchState.IDLE
        self.query = ""
        self.results: list[SearchResult] = []

    @property
    def issued_requests(self) -> int:
        """Number of search requests sent so far."""
        return self._issued

    def _set_state(self, state: SearchState) -> None:
        self.state = state
        if self._on_change is None:
            return
        try:
            self._on_change(self)
        except Exception:
            logger.exception("Search state listener failed on %s", state.value)

    def on_query_changed(self, text: str) -> None:
        """Feed the latest field text; must be called from a running event loop."""
        self.query = text
        # A new keystroke supersedes any response still in flight.
        self._seq += 1
        if len(text.strip()) < self._searcher.min_query_length:
            self._debouncer.cancel()
            self.results = []
            self._set_state(SearchState.IDLE)
            return

        self._set_state(SearchState.DEBOUNCING)
        self._debouncer(text)

    async def _run_search(self, text: str) -> None:
        self._issued += 1
        self._seq += 1
        seq = self._seq
        self._set_state(SearchState.SEARCHING)

        try:
            results = await self._searcher.search_places(text)
        except GeocodingError as e:
            if seq != self._seq:
                return
            logger.warning("Search failed for %r: %s", text, e)
            self.results = []
            self._set_state(SearchState.FAILED)
            return
        except Exception:
            if seq != self._seq:
                return
            logger.exception("Search pipeline failed for %r", text)
            self.results = []
            self._set_state(SearchState.FAILED)
            return

        if seq != self._seq:
            logger.debug("Dropping stale search response for %r", text)
            return

        self.results = list(results)
        self._set_state(SearchState.RESULTS if self.results else SearchState.EMPTY)

    def cancel(self) -> None:
        """Stop any pending search; late responses will be ignored."""
        self._debouncer.cancel()
        self._seq += 1

    def select(self, result: SearchResult) -> NamedPlace:
        """Turn a picked candidate into a `NamedPlace` and publish it if a channel is set."""
        place = result.to_place()
        if self._channel is not None:
            self._channel.publish(place)
        return place
