# inventory_dashboard/utils/timeouts.py
from __future__ import annotations

import asyncio
from typing import Awaitable, TypeVar

from ..errors import SessionTimeoutError

T = TypeVar("T")


async def with_timeout(aw: Awaitable[T], seconds: float, what: str) -> T:
    """
    Await `aw` for at most `seconds`.

    Expiry surfaces as SessionTimeoutError (an ordinary, recoverable error);
    the underlying awaitable is cancelled by asyncio.wait_for.
    """
    try:
        return await asyncio.wait_for(aw, timeout=seconds)
    except asyncio.TimeoutError as e:
        raise SessionTimeoutError(f"{what} timed out after {seconds:g}s") from e
