# inventory_dashboard/utils/callbacks.py
from __future__ import annotations

import logging
from typing import Callable, List, Optional

_log = logging.getLogger(__name__)


def safe_call(fn: Optional[Callable], *args, **kwargs) -> None:
    """Call a callback if present; a failing UI callback is logged, never re-raised."""
    if fn is None:
        return
    try:
        fn(*args, **kwargs)
    except Exception:
        _log.exception("Listener %r failed", fn)


class ListenerList:
    """Ordered listeners; add() hands back the matching unsubscribe callable."""

    def __init__(self) -> None:
        self._items: List[Callable] = []

    def __len__(self) -> int:
        return len(self._items)

    def add(self, fn: Callable) -> Callable[[], None]:
        self._items.append(fn)

        def _remove() -> None:
            if fn in self._items:
                self._items.remove(fn)

        return _remove

    def emit(self, *args) -> None:
        # Copy so a listener may unsubscribe while being notified.
        for fn in list(self._items):
            safe_call(fn, *args)

    def clear(self) -> None:
        self._items.clear()
