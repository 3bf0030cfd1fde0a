"""Cancellable delayed callback on the asyncio loop."""

from __future__ import annotations

import asyncio
from collections.abc import Callable


class Debouncer:
    """Coalesce bursts of triggers into one callback after a quiet period.

    Every :meth:`trigger` cancels the pending timer and schedules a new one,
    so the callback runs once, ``delay`` seconds after the last trigger.
    """

    def __init__(
        self,
        delay: float,
        callback: Callable[[], None],
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        self._delay = delay
        self._callback = callback
        self._loop = loop
        self._handle: asyncio.TimerHandle | None = None

    @property
    def delay(self) -> float:
        return self._delay

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def trigger(self) -> None:
        self.cancel()
        loop = self._loop or asyncio.get_running_loop()
        self._handle = loop.call_later(self._delay, self._fire)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self) -> None:
        if self._handle is None:
            return
        self._handle = None
        self._callback()
