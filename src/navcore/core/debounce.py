"""
Async debouncing.

`Debouncer` wraps a coroutine function so that a burst of calls results in exactly one
invocation, with the arguments of the last call, once no new call has arrived for
`window_seconds`. A new call cancels the pending timer; it never queues behind it.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

logger = logging.getLogger(__name__)


class Debouncer:
    """Cancel-on-redispatch wrapper around an async callable.

    Must be called from inside a running event loop.
    """

    def __init__(self, fn: Callable[..., Awaitable[Any]], window_seconds: float):
        if window_seconds < 0:
            raise ValueError("window_seconds must be >= 0")
        self._fn = fn
        self._window_seconds = float(window_seconds)
        self._pending: asyncio.Task[None] | None = None

    @property
    def window_seconds(self) -> float:
        return self._window_seconds

    @property
    def pending(self) -> bool:
        """True while a call is waiting for its quiescence window to elapse."""
        return self._pending is not None and not self._pending.done()

    def __call__(self, *args: Any, **kwargs: Any) -> asyncio.Task[None]:
        self.cancel()
        self._pending = asyncio.get_running_loop().create_task(self._fire_later(args, kwargs))
        return self._pending

    async def _fire_later(self, args: tuple[Any, ...], kwargs: dict[str, Any]) -> None:
        await asyncio.sleep(self._window_seconds)
        # From here on the call has fired; a later redispatch must not cancel it.
        self._pending = None
        try:
            await self._fn(*args, **kwargs)
        except Exception:
            # Nobody awaits the timer task, so report the failure here.
            logger.exception("Debounced call to %s failed", getattr(self._fn, "__qualname__", self._fn))

    def cancel(self) -> None:
        """Drop the pending call, if any."""
        if self._pending is not None and not self._pending.done():
            logger.debug("Debounced call superseded before its window elapsed")
            self._pending.cancel()
        self._pending = None


def debounce(fn: Callable[..., Awaitable[Any]], window_seconds: float) -> Debouncer:
    """Return a debounced version of the coroutine function `fn`."""
    return Debouncer(fn, window_seconds)
