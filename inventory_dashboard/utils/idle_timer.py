# inventory_dashboard/utils/idle_timer.py
from __future__ import annotations

from PySide6.QtCore import QEvent, QObject, QTimer, Signal

# Input that counts as activity.
ACTIVITY_EVENTS = frozenset({
    QEvent.MouseButtonPress,
    QEvent.MouseMove,
    QEvent.KeyPress,
    QEvent.Wheel,
    QEvent.TouchBegin,
})


class IdleTimer(QObject):
    """
    Application-wide inactivity watch.

    Install with `app.installEventFilter(timer)`. After `timeout_ms` without
    input emits `idle` once; the next input emits `active` and restarts the
    countdown. A timeout of 0 disables it.
    """

    idle = Signal()
    active = Signal()

    def __init__(self, timeout_ms: int, parent: QObject | None = None) -> None:
        super().__init__(parent)
        self.timeout_ms = max(0, int(timeout_ms))
        self.is_idle = False
        self._timer = QTimer(self)
        self._timer.setSingleShot(True)
        self._timer.timeout.connect(self._on_timeout)

    @property
    def enabled(self) -> bool:
        return self.timeout_ms > 0

    def start(self) -> None:
        self.is_idle = False
        if self.enabled:
            self._timer.start(self.timeout_ms)

    def stop(self) -> None:
        self._timer.stop()
        self.is_idle = False

    def reset(self) -> None:
        if not self.enabled:
            return
        if self.is_idle:
            self.is_idle = False
            self.active.emit()
        self._timer.start(self.timeout_ms)

    def eventFilter(self, watched: QObject, event: QEvent) -> bool:
        if event.type() in ACTIVITY_EVENTS and (self._timer.isActive() or self.is_idle):
            self.reset()
        return False

    def _on_timeout(self) -> None:
        self.is_idle = True
        self.idle.emit()
