# inventory_dashboard/tests/conftest.py
# ---------------------------------------------------------------------
# Ground rules:
# - pytest-qt owns QApplication (use qapp/qtbot fixtures); offscreen platform
# - No network: FakeBackend / FakeWebhook stand in for the hosted backend
#   and the mutation webhook, with per-method call counters, injected
#   failures and delays
# - Async code runs under asyncio.run inside plain test functions
# - Silence benign Qt signal warnings
# ---------------------------------------------------------------------

from __future__ import annotations

import asyncio
import os
import re
from collections import Counter
from dataclasses import replace
from datetime import datetime, timezone
from typing import Dict, List, Optional

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

import pytest
from PySide6 import QtCore

from inventory_dashboard.backend.records import (
    AuthEvent,
    AuthEventKind,
    AuthSession,
    InventoryStats,
    Material,
    Movement,
    MovementType,
    Profile,
)
from inventory_dashboard.backend.webhook import WebhookResponse
from inventory_dashboard.errors import AuthenticationError, BackendError
from inventory_dashboard.modules.inventory.cache import InventoryCache
from inventory_dashboard.modules.login.session import SessionManager


# ---------- Qt: let pytest-qt own the app ----------
@pytest.fixture(scope="session")
def app(qapp):
    return qapp


_BENIGN_QT_PATTERNS = [
    r"^QObject::connect: .* already connected",
    r"^QObject::disconnect: Unexpected null parameter",
    r"^QBasicTimer::stop: Failed\. Platform timer not running\.",
    r"^This plugin does not support propagateSizeHints",
]

@pytest.fixture(autouse=True, scope="session")
def _silence_benign_qt():
    """Filter common harmless Qt messages during tests."""
    original = QtCore.qInstallMessageHandler(None)
    rx = [re.compile(p) for p in _BENIGN_QT_PATTERNS]

    def handler(msg_type, context, message):
        text = str(message)
        for r in rx:
            if r.search(text):
                return
        QtCore.qInstallMessageHandler(None)
        try:
            QtCore.qDebug(message)
        finally:
            QtCore.qInstallMessageHandler(handler)

    QtCore.qInstallMessageHandler(handler)
    try:
        yield
    finally:
        QtCore.qInstallMessageHandler(original)


# ---------- Record builders ----------
def make_material(
    id: str = "m1",
    current: float = 10,
    minimum: float = 2,
    name: Optional[str] = None,
    **kw,
) -> Material:
    return Material(
        id=id,
        code=kw.pop("code", f"MAT_{id}"),
        name=name or f"Material {id}",
        category=kw.pop("category", "Cables"),
        location=kw.pop("location", "Shelf A"),
        current_stock=float(current),
        min_stock=float(minimum),
        initial_stock=float(kw.pop("initial", current)),
        created_at=kw.pop("created_at", datetime(2025, 1, 1, tzinfo=timezone.utc)),
        updated_at=kw.pop("updated_at", None),
        unit=kw.pop("unit", ""),
        unit_price=float(kw.pop("unit_price", 0.0)),
    )


# ---------- Fake backend ----------
class _Subscription:
    def __init__(self, backend: "FakeBackend", callback) -> None:
        self.backend = backend
        self.callback = callback

    def unsubscribe(self) -> None:
        if self.callback in self.backend.listeners:
            self.backend.listeners.remove(self.callback)


class FakeBackend:
    """
    In-memory stand-in for SupabaseBackend.

    - calls[name]   how many times each coroutine was entered
    - fail[name]    exception to raise from that coroutine
    - delay[name]   seconds to sleep before answering
    """

    def __init__(self) -> None:
        self.session: Optional[AuthSession] = None
        self.profiles: Dict[str, dict] = {}
        self.credentials: Dict[str, tuple] = {}
        self.materials: List[Material] = []
        self.movements: List[Movement] = []
        self.listeners: list = []
        self.calls: Counter = Counter()
        self.fail: Dict[str, BaseException] = {}
        self.delay: Dict[str, float] = {}
        self.edited_by: Dict[str, str] = {}

    # helpers for tests
    def add_user(self, user_id: str, email: str, role: Optional[str], password: str = "secret",
                 full_name: Optional[str] = None) -> AuthSession:
        auth = AuthSession(user_id=user_id, email=email)
        self.credentials[email] = (password, auth)
        if role is not None:
            self.profiles[user_id] = {
                "id": user_id,
                "role": role,
                "nombre_completo": full_name,
                "email": email,
                "created_at": "2025-01-01T00:00:00Z",
            }
        return auth

    def emit(self, kind: AuthEventKind, session: Optional[AuthSession] = None) -> None:
        for cb in list(self.listeners):
            cb(AuthEvent(kind=kind, session=session, raw_kind=kind.value))

    async def _enter(self, name: str) -> None:
        self.calls[name] += 1
        if self.delay.get(name):
            await asyncio.sleep(self.delay[name])
        exc = self.fail.get(name)
        if exc is not None:
            raise exc

    # capability surface
    async def get_session(self) -> Optional[AuthSession]:
        await self._enter("get_session")
        return self.session

    async def sign_in(self, email: str, password: str) -> AuthSession:
        await self._enter("sign_in")
        cred = self.credentials.get(email)
        if cred is None or cred[0] != password:
            raise AuthenticationError("Invalid login credentials")
        self.session = cred[1]
        return cred[1]

    async def sign_out(self) -> None:
        await self._enter("sign_out")
        self.session = None

    async def get_user_profile(self, user_id: str) -> Optional[dict]:
        await self._enter("get_user_profile")
        return self.profiles.get(user_id)

    async def query_materials(self) -> List[Material]:
        await self._enter("query_materials")
        return list(self.materials)

    async def query_movements(self, limit: int = 100) -> List[Movement]:
        await self._enter("query_movements")
        return list(self.movements)[:limit]

    async def query_stats(self) -> InventoryStats:
        await self._enter("query_stats")
        return InventoryStats.from_records(self.materials, self.movements)

    async def search_materials(self, query: str) -> List[Material]:
        await self._enter("search_materials")
        q = query.strip().lower()
        return [
            m for m in self.materials
            if q in m.name.lower() or q in m.code.lower()
            or q in m.category.lower() or q in m.location.lower()
        ]

    async def list_categories(self) -> List[str]:
        await self._enter("list_categories")
        return sorted({m.category for m in self.materials})

    async def list_locations(self) -> List[str]:
        await self._enter("list_locations")
        return sorted({m.location for m in self.materials})

    async def update_material(self, material_id: str, edit, updated_by: str) -> None:
        await self._enter("update_material")
        for i, m in enumerate(self.materials):
            if m.id == material_id:
                self.materials[i] = replace(
                    m,
                    name=edit.name,
                    category=edit.category,
                    location=edit.location,
                    min_stock=edit.min_stock,
                    unit_price=edit.unit_price,
                    unit=edit.unit,
                    updated_at=datetime.now(timezone.utc),
                )
                self.edited_by[material_id] = updated_by
                return
        raise BackendError("The material was not updated; it may have been removed or you lack access")

    async def list_profiles(self) -> List[Profile]:
        await self._enter("list_profiles")
        return [Profile.from_mapping(p) for p in self.profiles.values()]

    async def update_profile_role(self, user_id: str, role: str) -> None:
        await self._enter("update_profile_role")
        self.profiles[user_id]["role"] = role

    async def update_profile_name(self, user_id: str, full_name: str) -> None:
        await self._enter("update_profile_name")
        self.profiles[user_id]["nombre_completo"] = full_name

    def subscribe_auth_events(self, callback) -> _Subscription:
        self.listeners.append(callback)
        return _Subscription(self, callback)


# ---------- Fake webhook ----------
class FakeWebhook:
    """Applies each accepted request to the FakeBackend, like the real workflow does."""

    def __init__(self, backend: FakeBackend) -> None:
        self.backend = backend
        self.sent: list = []
        self.fail: Optional[BaseException] = None

    def _accept(self, action: str, payload, actor) -> None:
        self.sent.append((action, payload, actor))
        if self.fail is not None:
            raise self.fail

    def _move(self, material_id: str, delta: float, comment: str, actor) -> None:
        mats = self.backend.materials
        for i, m in enumerate(mats):
            if m.id == material_id:
                mats[i] = replace(m, current_stock=m.current_stock + delta)
                kind = MovementType.INCREASE if delta > 0 else MovementType.DECREASE
                self.backend.movements.insert(0, Movement(
                    id=f"mv{len(self.backend.movements) + 1}",
                    material_id=m.id,
                    material_name=m.name,
                    type=kind,
                    quantity=delta,
                    responsible=actor.email,
                    comment=comment,
                    timestamp=datetime.now(timezone.utc),
                ))
                return

    async def create_material(self, new, actor) -> WebhookResponse:
        self._accept("CreateMaterial", new, actor)
        self.backend.materials.insert(0, make_material(
            id=f"new{len(self.backend.materials) + 1}",
            current=new.quantity,
            minimum=new.min_stock,
            name=new.name,
            code=new.code,
        ))
        return WebhookResponse("success", "Material created", "create", {"code": new.code})

    async def increase_stock(self, material_id, quantity, comment, actor) -> WebhookResponse:
        self._accept("IncreaseStock", (material_id, quantity, comment), actor)
        self._move(material_id, quantity, comment, actor)
        return WebhookResponse("success", "Stock increased", "increase")

    async def decrease_stock(self, material_id, quantity, comment, actor) -> WebhookResponse:
        self._accept("DecreaseStock", (material_id, quantity, comment), actor)
        self._move(material_id, -quantity, comment, actor)
        return WebhookResponse("success", "Stock decreased", "decrease")


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


# ---------- Fixtures ----------
@pytest.fixture()
def material():
    """Factory: material(id, current, minimum, name=None, **fields)."""
    return make_material


@pytest.fixture()
def backend() -> FakeBackend:
    b = FakeBackend()
    b.materials = [
        make_material("m1", current=3, minimum=5, name="Copper cable"),
        make_material("m2", current=0, minimum=2, name="Fuse 10A", category="Electrical"),
        make_material("m3", current=40, minimum=10, name="Screws M4", location="Drawer 3"),
    ]
    return b


@pytest.fixture()
def webhook(backend: FakeBackend) -> FakeWebhook:
    return FakeWebhook(backend)


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def cache(backend, webhook, clock) -> InventoryCache:
    return InventoryCache(backend, webhook, clock=clock)


@pytest.fixture()
def signed_in(backend: FakeBackend):
    """Factory: put a live session for `role` on the backend and return it."""
    def _make(role: Optional[str] = "tecnico", user_id: str = "u-tech", email: str = "tech@example.com"):
        auth = backend.add_user(user_id, email, role, full_name="Tess Tech")
        backend.session = auth
        return auth
    return _make


@pytest.fixture()
def session_manager(backend, cache) -> SessionManager:
    mgr = SessionManager(backend, sign_out_hooks=[cache.clear], debounce_delay=0.05)
    yield mgr
    mgr.close()
