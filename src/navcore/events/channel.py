"""
Place-selection channel.

A typed publish/subscribe channel carrying `NamedPlace` payloads from a search surface
to whatever consumes the selection (see `navcore.navigation.planner.TripPlanner`).
Create one instance at the composition root and hand it to both sides.

Delivery is synchronous, in registration order, to the subscribers registered when
`publish` is called. Nothing is buffered.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

from navcore.domain.models import NamedPlace

logger = logging.getLogger(__name__)

PlaceHandler = Callable[[NamedPlace], None]
Unsubscribe = Callable[[], None]


@dataclass
class _Subscription:
    handler: PlaceHandler
    active: bool = True


class SelectionChannel:
    def __init__(self) -> None:
        self._subscriptions: list[_Subscription] = []

    def __len__(self) -> int:
        return len(self._subscriptions)

    def subscribe(self, handler: PlaceHandler) -> Unsubscribe:
        """Register `handler`; returns an idempotent function that removes it."""
        subscription = _Subscription(handler)
        self._subscriptions.append(subscription)

        def unsubscribe() -> None:
            if not subscription.active:
                return
            subscription.active = False
            self._subscriptions = [s for s in self._subscriptions if s is not subscription]

        return unsubscribe

    def publish(self, place: NamedPlace) -> int:
        """Deliver `place` to current subscribers; returns how many handlers ran."""
        delivered = 0
        # Snapshot: handlers may subscribe or unsubscribe while we iterate.
        for subscription in list(self._subscriptions):
            if not subscription.active:
                continue
            try:
                subscription.handler(place)
            except Exception:
                logger.exception("Place-selection handler %r failed", subscription.handler)
                continue
            delivered += 1
        return delivered
