"""Debounce for search-as-you-type - deliver only the latest query after a quiet period."""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional


logger = logging.getLogger(__name__)

# Default quiet period (seconds)
DEFAULT_DEBOUNCE_SECONDS = 0.175

_NOTHING = object()


class QueryDebouncer:
    """
    Hold the latest submitted value and deliver it once input goes quiet.

    Every submit() cancels the pending timer and starts a new one, so a burst
    of keystrokes produces a single callback with the final value.
    """

    def __init__(
        self,
        callback: Callable[[Any], Awaitable[Any]],
        delay_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
    ):
        if delay_seconds < 0:
            raise ValueError("delay_seconds must be non-negative")
        self.callback = callback
        self.delay_seconds = delay_seconds
        self._pending: Any = _NOTHING
        self._timer: Optional[asyncio.Task] = None

    @property
    def has_pending(self) -> bool:
        return self._pending is not _NOTHING

    def submit(self, value: Any) -> None:
        """Replace the pending value and restart the quiet period. Needs a running loop."""
        self._pending = value
        self._cancel_timer()
        self._timer = asyncio.get_running_loop().create_task(self._deliver_after_delay())

    async def flush(self) -> Optional[Any]:
        """Deliver the pending value now. Returns the callback result, or None if nothing was pending."""
        self._cancel_timer()
        return await self._deliver()

    def cancel(self) -> None:
        """Discard the pending value without delivering it."""
        self._cancel_timer()
        self._pending = _NOTHING

    async def _deliver_after_delay(self) -> None:
        await asyncio.sleep(self.delay_seconds)
        self._timer = None
        await self._deliver()

    async def _deliver(self) -> Optional[Any]:
        if self._pending is _NOTHING:
            return None
        value, self._pending = self._pending, _NOTHING
        logger.debug("Debounced value delivered: %r", value)
        return await self.callback(value)

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
