from __future__ import annotations

import asyncio
import logging
from typing import Any, List, Optional, Set

from PySide6.QtCore import Signal
from PySide6.QtWidgets import QWidget

from ..base_module import BaseModule
from ..login.permissions import Capability, Role
from ..login.session import SessionManager
from ...backend.records import Profile
from ...constants import PROFILE_FETCH_TIMEOUT
from ...errors import InventoryDashboardError, ValidationError
from ...utils.timeouts import with_timeout
from .view import UsersView

_log = logging.getLogger(__name__)


class UsersController(BaseModule):
    """
    User management: list profiles, change their role, correct their name.

    Only built for users holding `user_management`; every action re-checks
    the permission since the session can change underneath the page.
    """

    notify = Signal(str, str)

    def __init__(self, backend: Any, session: SessionManager, parent: QWidget | None = None):
        super().__init__()
        self.backend = backend
        self.session = session
        self.view = UsersView(parent)
        self._tasks: Set[asyncio.Task] = set()

        self.view.refresh_requested.connect(lambda: self._spawn(self.load()))
        self.view.role_change_requested.connect(lambda role: self._spawn(self.change_role(role)))
        self.view.rename_requested.connect(lambda name: self._spawn(self.rename(name)))

    def get_widget(self) -> QWidget:
        return self.view

    # ----------------------------- Public API -----------------------------

    async def load(self) -> List[Profile]:
        if not self._allowed():
            return []
        try:
            profiles = await with_timeout(self.backend.list_profiles(), PROFILE_FETCH_TIMEOUT, "Profile list")
        except InventoryDashboardError as e:
            self.notify.emit("error", f"Could not load users: {e.message}")
            return []
        self.view.model.replace(profiles)
        return profiles

    async def change_role(self, role: str, profile: Optional[Profile] = None) -> bool:
        if not self._allowed():
            return False
        profile = profile or self.view.selected_profile()
        try:
            if profile is None:
                raise ValidationError("Select a user first")
            new_role = Role(role)
        except ValueError as e:
            self.notify.emit("warning", getattr(e, "message", None) or f"Unknown role: {role!r}")
            return False
        if self.session.user is not None and profile.id == self.session.user.id:
            self.notify.emit("warning", "You cannot change your own role")
            return False

        try:
            await with_timeout(
                self.backend.update_profile_role(profile.id, new_role.value),
                PROFILE_FETCH_TIMEOUT,
                "Role update",
            )
        except InventoryDashboardError as e:
            self.notify.emit("error", f"Could not change the role: {e.message}")
            return False
        _log.info("Role of %s set to %s", profile.email or profile.id, new_role.value)
        self.notify.emit("info", f"{profile.full_name or profile.email or 'User'} is now {new_role.value}")
        await self.load()
        return True

    async def rename(self, full_name: str, profile: Optional[Profile] = None) -> bool:
        if not self._allowed():
            return False
        profile = profile or self.view.selected_profile()
        full_name = (full_name or "").strip()
        if profile is None or not full_name:
            self.notify.emit("warning", "Select a user first" if profile is None else "A name is required")
            return False

        try:
            await with_timeout(
                self.backend.update_profile_name(profile.id, full_name),
                PROFILE_FETCH_TIMEOUT,
                "Profile update",
            )
        except InventoryDashboardError as e:
            self.notify.emit("error", f"Could not rename the user: {e.message}")
            return False
        _log.info("Profile %s renamed", profile.email or profile.id)
        self.notify.emit("info", f"{profile.email or 'User'} is now shown as {full_name}")
        self.view.txt_name.clear()
        await self.load()
        return True

    def close(self) -> None:
        for task in list(self._tasks):
            task.cancel()

    # ----------------------------- Internals -----------------------------

    def _allowed(self) -> bool:
        if self.session.has_permission(Capability.USER_MANAGEMENT):
            return True
        self.notify.emit("warning", "Your role cannot manage users")
        return False

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task
