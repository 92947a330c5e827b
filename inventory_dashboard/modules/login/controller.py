# inventory_dashboard/modules/login/controller.py
from __future__ import annotations

import asyncio
import logging
from typing import Optional

from PySide6.QtCore import QObject, Signal
from PySide6.QtWidgets import QWidget

from ...errors import InventoryDashboardError
from .model import User
from .session import SessionManager
from .view import LoginDialog

_log = logging.getLogger(__name__)


class LoginController(QObject):
    """
    Sign-in flow on top of SessionManager.

    Public attrs (set after each attempt()):
      - last_error_message: str | None
      - last_email: str | None
    """

    signed_in = Signal(object)  # User

    def __init__(self, session: SessionManager, parent: QWidget | None = None) -> None:
        super().__init__()
        self.session = session
        self.dialog = LoginDialog(parent)
        self.dialog.submitted.connect(self._on_submitted)

        self.last_error_message: Optional[str] = None
        self.last_email: Optional[str] = None
        self._pending: Optional[asyncio.Task] = None

    # ----------------------------- Public API -----------------------------

    def show(self, message: str | None = None) -> None:
        self.dialog.set_error(None)
        self.dialog.set_info(message)
        self.dialog.password.clear()
        self.dialog.show()

    async def attempt(self, email: str, password: str) -> Optional[User]:
        """
        Try to sign in. Returns the user on success; on failure shows the
        error in the dialog and returns None.
        """
        self.last_error_message = None
        self.last_email = (email or "").strip()
        self.dialog.set_error(None)
        self.dialog.show_busy(True)
        try:
            user = await self.session.login(email, password)
        except InventoryDashboardError as e:
            self.last_error_message = e.message
            self.dialog.set_error(e.message)
            return None
        finally:
            self.dialog.show_busy(False)

        self.dialog.accept()
        self.signed_in.emit(user)
        return user

    # ----------------------------- Internals -----------------------------

    def _on_submitted(self, email: str, password: str) -> None:
        if self._pending is not None and not self._pending.done():
            return
        self._pending = asyncio.ensure_future(self.attempt(email, password))
