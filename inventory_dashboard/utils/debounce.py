# inventory_dashboard/utils/debounce.py
from __future__ import annotations

import asyncio
from typing import Callable, Optional


class Debouncer:
    """
    Trailing-edge debounce on the asyncio loop.

    State is either "no pending call" or "one pending timer handle". Each
    schedule() replaces the pending call, so a burst collapses into its last
    member firing `delay` seconds after the burst ends. cancel() drops the
    pending call; terminal events must call it before acting.
    """

    def __init__(self, delay: float, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        self.delay = delay
        self._loop = loop
        self._handle: Optional[asyncio.TimerHandle] = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def schedule(self, fn: Callable[[], None]) -> None:
        self.cancel()
        loop = self._loop or asyncio.get_running_loop()
        self._handle = loop.call_later(self.delay, self._fire, fn)

    def cancel(self) -> bool:
        """Drop the pending call. Returns True if one was pending."""
        handle, self._handle = self._handle, None
        if handle is None:
            return False
        handle.cancel()
        return True

    def _fire(self, fn: Callable[[], None]) -> None:
        self._handle = None
        fn()
