from __future__ import annotations

import asyncio
import logging
import sys
from typing import Any, List, Optional, Set, Tuple

from PySide6 import QtAsyncio
from PySide6.QtWidgets import (
    QApplication,
    QHBoxLayout,
    QLabel,
    QListWidget,
    QMainWindow,
    QPushButton,
    QSizePolicy,
    QStackedWidget,
    QVBoxLayout,
    QWidget,
)

from .backend.client import SupabaseBackend
from .backend.webhook import MutationWebhook
from .config import Settings, load_settings
from .constants import APP_NAME
from .errors import ConfigurationError
from .modules.base_module import BaseModule
from .modules.inventory.cache import InventoryCache
from .modules.inventory.controller import InventoryController
from .modules.login.controller import LoginController
from .modules.login.model import Session, User
from .modules.login.permissions import Capability
from .modules.login.session import SessionManager
from .modules.users.controller import UsersController
from .utils.idle_timer import IdleTimer
from .utils.loggers import configure_logging
from .utils.ui_helpers import error, toast

_log = logging.getLogger(__name__)


class MainWindow(QMainWindow):
    """
    Shell: left nav + stacked pages, a user strip and a status bar for toasts.

    Pages exist only while someone is signed in. Signing out (button, idle
    timeout or a backend signed-out event) tears them down and brings the
    login dialog back.
    """

    def __init__(
        self,
        backend: Any,
        session: SessionManager,
        cache: InventoryCache,
        idle_timeout_ms: int = 0,
    ):
        super().__init__()
        self.setWindowTitle(APP_NAME)
        self.setMinimumSize(820, 520)

        self.backend = backend
        self.session = session
        self.cache = cache
        self.modules: List[Tuple[str, BaseModule]] = []
        self._tasks: Set[asyncio.Task] = set()
        self._current_user_id: Optional[str] = None

        # ---- Central layout: user strip, then left nav + stacked pages ----
        central = QWidget(self)
        layout = QVBoxLayout(central)
        self.setCentralWidget(central)

        top = QHBoxLayout()
        self.lbl_user = QLabel()
        top.addWidget(self.lbl_user)
        top.addStretch(1)
        self.btn_logout = QPushButton("Sign out")
        self.btn_logout.clicked.connect(lambda: self._spawn(self.sign_out()))
        top.addWidget(self.btn_logout)
        layout.addLayout(top)

        self.nav = QListWidget()
        self.nav.setFixedWidth(120)
        self.nav.setSizePolicy(QSizePolicy.Fixed, QSizePolicy.Expanding)
        self.stack = QStackedWidget()
        row = QHBoxLayout()
        row.addWidget(self.nav)
        row.addWidget(self.stack, 1)
        layout.addLayout(row, 1)
        self.nav.currentRowChanged.connect(self.stack.setCurrentIndex)

        self.login = LoginController(session, self)
        self.login.dialog.rejected.connect(QApplication.instance().quit)

        self.idle = IdleTimer(idle_timeout_ms, self)
        self.idle.idle.connect(self._on_idle)

        self._unwatch = session.watch(self._on_session)
        self._set_user_strip(None)

    # ----------------------------- Public API -----------------------------

    async def start(self) -> None:
        state = await self.session.start()
        if state.user is None:
            self.login.show(state.error)

    async def sign_out(self, message: str | None = None) -> None:
        await self.session.logout()
        if self.session.state.error:
            self.notify("warning", f"Signed out locally: {self.session.state.error}")
        if message:
            self.login.dialog.set_info(message)

    def notify(self, level: str, message: str) -> None:
        toast(self.statusBar(), level, message)

    def shutdown(self) -> None:
        for task in list(self._tasks):
            task.cancel()
        self._unwatch()
        self._teardown_pages()
        self.cache.teardown()
        self.session.close()
        _log.info("Shut down")

    # ----------------------------- Internals -----------------------------

    def _on_session(self, state: Session) -> None:
        user = state.user
        if user is not None and user.id != self._current_user_id:
            self._teardown_pages()
            self._build_pages(user)
        elif user is not None:
            self._set_user_strip(user)
        elif user is None and not state.loading and self._current_user_id is not None:
            self._teardown_pages()
            self.login.show(state.error)

    def _build_pages(self, user: User) -> None:
        self._current_user_id = user.id
        self._set_user_strip(user)

        inventory = InventoryController(self.cache, self.session)
        inventory.notify.connect(self.notify)
        self._add_module("Inventory", inventory)
        self._spawn(inventory.load())

        if self.session.has_permission(Capability.USER_MANAGEMENT):
            users = UsersController(self.backend, self.session)
            users.notify.connect(self.notify)
            self._add_module("Users", users)
            self._spawn(users.load())

        self.nav.setCurrentRow(0)
        if user.degraded:
            self.notify("warning", "Your profile could not be loaded; using default permissions")
        QApplication.instance().installEventFilter(self.idle)
        self.idle.start()
        self.show()

    def _teardown_pages(self) -> None:
        self.idle.stop()
        app = QApplication.instance()
        if app is not None:
            app.removeEventFilter(self.idle)
        for _title, mod in self.modules:
            mod.close()
            w = mod.get_widget()
            self.stack.removeWidget(w)
            w.deleteLater()
        self.modules.clear()
        self.nav.clear()
        self._current_user_id = None
        self._set_user_strip(None)

    def _add_module(self, title: str, module: BaseModule) -> None:
        self.modules.append((title, module))
        self.stack.addWidget(module.get_widget())
        self.nav.addItem(title)

    def _set_user_strip(self, user: Optional[User]) -> None:
        if user is None:
            self.lbl_user.setText("Not signed in")
            self.btn_logout.setEnabled(False)
            return
        self.lbl_user.setText(f"<b>{user.display_name}</b> · {user.email} · {user.original_role}")
        self.btn_logout.setEnabled(True)

    def _on_idle(self) -> None:
        if self.session.user is not None:
            _log.info("Signing out after inactivity")
            self._spawn(self.sign_out("You were signed out after a period of inactivity."))

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task


async def _bootstrap(app: QApplication, settings: Settings) -> None:
    backend = await SupabaseBackend.connect(settings)
    webhook = MutationWebhook(settings.webhook_url)
    cache = InventoryCache(backend, webhook)
    session = SessionManager(backend, sign_out_hooks=[cache.clear])

    win = MainWindow(backend, session, cache, idle_timeout_ms=settings.idle_timeout_ms)
    win.resize(1000, 640)
    app.aboutToQuit.connect(win.shutdown)
    app.main_window = win  # keep a reference for the lifetime of the loop
    await win.start()


def main():
    app = QApplication.instance()
    if app is None:
        app = QApplication(sys.argv)
    app.setApplicationName(APP_NAME)
    app.setQuitOnLastWindowClosed(True)

    try:
        settings = load_settings()
    except ConfigurationError as e:
        error(None, "Configuration", e.message)
        sys.exit(2)

    configure_logging(settings.log_level)
    _log.info("Starting %s", APP_NAME)
    QtAsyncio.run(_bootstrap(app, settings), keep_running=True, quit_qapp=True)


if __name__ == "__main__":
    main()
