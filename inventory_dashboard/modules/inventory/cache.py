# inventory_dashboard/modules/inventory/cache.py
"""
Shared, short-lived cache of the inventory read model.

One InventoryCache is owned by the application and handed to every page
that shows inventory. Pages talk to it through an InventoryConsumer, which
tracks their own loading/error state and goes quiet after close().

Reads:
- A snapshot younger than the TTL is served without touching the backend.
- Otherwise one fetch runs the three reads concurrently; callers arriving
  while it runs await the same task.
- A forced read never joins a non-forced fetch, nor any fetch started before
  the last invalidate(). It may join a forced fetch of the current epoch.
- Materials failing fails the read. Movements or stats failing degrade to
  empty/zero for that slice.

Stock and create writes go to the webhook; descriptive edits go straight to
the materials table. On success the snapshot is invalidated and a
forced refresh completes before the mutator returns.
"""

from __future__ import annotations

import asyncio
import logging
import math
import time
from dataclasses import dataclass, replace
from typing import Any, Callable, List, Optional, Tuple

from ...backend.records import (
    InventoryStats,
    Material,
    MaterialEdit,
    MaterialRef,
    Movement,
    NewMaterial,
)
from ...backend.webhook import Actor, generate_material_code
from ...constants import (
    CACHE_TTL_SECONDS,
    MATERIALS_FETCH_TIMEOUT,
    MOVEMENTS_FETCH_LIMIT,
    MOVEMENTS_FETCH_TIMEOUT,
    SESSION_CHECK_TIMEOUT,
    STATS_FETCH_TIMEOUT,
)
from ...errors import (
    AuthenticationError,
    BackendError,
    InventoryDashboardError,
    SessionTimeoutError,
    ValidationError,
)
from ...utils.callbacks import ListenerList
from ...utils.helpers import short_id
from ...utils.timeouts import with_timeout
from ...utils.validators import try_parse_float
from .forms import validate_material_edit, validate_new_material

_log = logging.getLogger(__name__)

# Failures a read slice may degrade on; anything else is a bug and propagates.
_READ_ERRORS = (BackendError, SessionTimeoutError)


@dataclass(frozen=True)
class InventorySnapshot:
    materials: Tuple[Material, ...]
    movements: Tuple[Movement, ...]
    stats: InventoryStats
    fetched_at: float  # clock() at fetch start


class InventoryCache:
    def __init__(
        self,
        backend: Any,
        webhook: Any,
        *,
        ttl: float = CACHE_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        materials_timeout: float = MATERIALS_FETCH_TIMEOUT,
        movements_timeout: float = MOVEMENTS_FETCH_TIMEOUT,
        stats_timeout: float = STATS_FETCH_TIMEOUT,
        session_timeout: float = SESSION_CHECK_TIMEOUT,
        movements_limit: int = MOVEMENTS_FETCH_LIMIT,
    ) -> None:
        self.backend = backend
        self.webhook = webhook
        self.ttl = ttl
        self.clock = clock
        self.materials_timeout = materials_timeout
        self.movements_timeout = movements_timeout
        self.stats_timeout = stats_timeout
        self.session_timeout = session_timeout
        self.movements_limit = movements_limit

        self.last_error: Optional[str] = None

        self._snapshot: Optional[InventorySnapshot] = None
        self._inflight: Optional[asyncio.Task] = None
        self._inflight_forced = False
        self._inflight_epoch = 0
        self._epoch = 0
        self._seq = 0
        self._stored_seq = 0

    # ---------------------------- Lifecycle ----------------------------

    def invalidate(self) -> None:
        """Drop the snapshot; fetches already running will not be stored."""
        self._snapshot = None
        self._epoch += 1

    def clear(self) -> None:
        """Forget everything the last user could see (sign-out)."""
        self.invalidate()
        self.last_error = None
        _log.info("Inventory cache cleared")

    def teardown(self) -> None:
        self.clear()
        task, self._inflight = self._inflight, None
        if task is not None and not task.done():
            task.cancel()

    def consumer(self) -> "InventoryConsumer":
        return InventoryConsumer(self)

    @property
    def snapshot(self) -> Optional[InventorySnapshot]:
        """Current snapshot, expired or not; None after invalidate()."""
        return self._snapshot

    def is_fresh(self) -> bool:
        snap = self._snapshot
        return snap is not None and (self.clock() - snap.fetched_at) < self.ttl

    # ------------------------------ Reads ------------------------------

    async def get_snapshot(self, force_refresh: bool = False) -> InventorySnapshot:
        if not force_refresh and self.is_fresh():
            _log.debug("Inventory cache hit")
            return self._snapshot  # type: ignore[return-value]

        task = self._inflight
        joinable = (
            task is not None
            and not task.done()
            and self._inflight_epoch == self._epoch
            and (self._inflight_forced or not force_refresh)
        )
        if joinable:
            _log.debug("Joining in-flight inventory fetch")
        else:
            _log.debug("Inventory cache miss (forced=%s)", force_refresh)
            task = self._start_fetch(force_refresh)
        # shield: a cancelled caller must not cancel the fetch others await
        return await asyncio.shield(task)

    async def search_materials(self, query: str) -> List[Material]:
        """Live query, never cached. Failure -> [] with `last_error` set."""
        if not (query or "").strip():
            return []
        try:
            results = await with_timeout(
                self.backend.search_materials(query), self.materials_timeout, "Material search"
            )
        except _READ_ERRORS as e:
            _log.warning("Material search failed: %s", e.message)
            self.last_error = e.message
            return []
        self.last_error = None
        return list(results)

    async def list_categories(self) -> List[str]:
        return await self._lookup(self.backend.list_categories, "Category list")

    async def list_locations(self) -> List[str]:
        return await self._lookup(self.backend.list_locations, "Location list")

    # ----------------------------- Mutators -----------------------------

    async def create_material(self, new: NewMaterial) -> MaterialRef:
        if not (new.code or "").strip():
            new = replace(new, code=generate_material_code())
        new = validate_new_material(new)
        actor = await self._acting_user()
        response = await self.webhook.create_material(new, actor)
        _log.info("Material %s created by %s", new.code, short_id(actor.user_id))
        await self._refresh_after_write()
        return MaterialRef(code=new.code, message=response.message, data=response.data)

    async def update_stock(self, material_id: str, change: float, comment: str) -> None:
        """
        Apply a signed stock change: positive -> increase, negative ->
        decrease, each sent as the absolute quantity.
        """
        if not material_id:
            raise ValidationError("Select a material first")
        ok, change = try_parse_float(change)
        if not ok or not math.isfinite(change):
            raise ValidationError("Quantity change must be a finite number")
        if not change:
            raise ValidationError("Quantity change cannot be zero")
        comment = (comment or "").strip()
        if not comment:
            raise ValidationError("A comment is required")

        actor = await self._acting_user()
        quantity = abs(change)
        if change > 0:
            await self.webhook.increase_stock(material_id, quantity, comment, actor)
        else:
            await self.webhook.decrease_stock(material_id, quantity, comment, actor)
        _log.info("Stock of %s changed by %+g", short_id(material_id), change)
        await self._refresh_after_write()

    async def update_material(self, material_id: str, edit: MaterialEdit) -> None:
        if not material_id:
            raise ValidationError("Select a material first")
        edit = validate_material_edit(edit)
        actor = await self._acting_user()
        await with_timeout(
            self.backend.update_material(material_id, edit, actor.user_id),
            self.materials_timeout,
            "Material update",
        )
        _log.info("Material %s edited by %s", short_id(material_id), short_id(actor.user_id))
        await self._refresh_after_write()

    # ----------------------------- Internals -----------------------------

    def _start_fetch(self, forced: bool) -> asyncio.Task:
        self._seq += 1
        task = asyncio.ensure_future(self._fetch(self._seq, self._epoch))
        task.add_done_callback(_consume_result)
        self._inflight = task
        self._inflight_forced = forced
        self._inflight_epoch = self._epoch
        return task

    async def _fetch(self, seq: int, epoch: int) -> InventorySnapshot:
        started = self.clock()
        materials, movements, stats = await asyncio.gather(
            with_timeout(self.backend.query_materials(), self.materials_timeout, "Materials fetch"),
            with_timeout(
                self.backend.query_movements(self.movements_limit),
                self.movements_timeout,
                "Movements fetch",
            ),
            with_timeout(self.backend.query_stats(), self.stats_timeout, "Stats fetch"),
            return_exceptions=True,
        )

        if isinstance(materials, BaseException):
            if isinstance(materials, InventoryDashboardError):
                _log.error("Materials fetch failed: %s", materials.message)
                if epoch == self._epoch:
                    self.last_error = materials.message
            raise materials
        if isinstance(movements, _READ_ERRORS):
            _log.warning("Movements unavailable, showing none: %s", movements.message)
            movements = []
        elif isinstance(movements, BaseException):
            raise movements
        if isinstance(stats, _READ_ERRORS):
            _log.warning("Stats unavailable, showing zeros: %s", stats.message)
            stats = InventoryStats.zero()
        elif isinstance(stats, BaseException):
            raise stats

        snap = InventorySnapshot(
            materials=tuple(materials),
            movements=tuple(movements),
            stats=stats,
            fetched_at=started,
        )
        if epoch == self._epoch and seq > self._stored_seq:
            self._snapshot = snap
            self._stored_seq = seq
            self.last_error = None
        else:
            _log.debug("Inventory fetch #%d finished after invalidation; not stored", seq)
        return snap

    async def _lookup(self, call, what: str) -> List[str]:
        try:
            return list(await with_timeout(call(), self.materials_timeout, what))
        except _READ_ERRORS as e:
            _log.warning("%s unavailable: %s", what, e.message)
            self.last_error = e.message
            return []

    async def _acting_user(self) -> Actor:
        auth = await with_timeout(self.backend.get_session(), self.session_timeout, "Session check")
        if auth is None:
            raise AuthenticationError("You must be signed in to change the inventory")
        return Actor(user_id=auth.user_id, email=auth.email)

    async def _refresh_after_write(self) -> None:
        self.invalidate()
        try:
            await self.get_snapshot(force_refresh=True)
        except _READ_ERRORS as e:
            _log.warning("Change applied but the refresh failed: %s", e.message)
            self.last_error = e.message


def _consume_result(task: asyncio.Task) -> None:
    # Retrieve the exception so an unawaited failed fetch is not reported twice.
    if not task.cancelled():
        task.exception()


@dataclass(frozen=True)
class InventoryState:
    materials: Tuple[Material, ...] = ()
    movements: Tuple[Movement, ...] = ()
    stats: InventoryStats = InventoryStats()
    loading: bool = False
    error: Optional[str] = None


class InventoryConsumer:
    """
    One page's view of the shared cache.

    After close() nothing is published and listeners are dropped; awaited
    calls still resolve. The shared cache itself is untouched.
    """

    def __init__(self, cache: InventoryCache) -> None:
        self.cache = cache
        self._state = InventoryState()
        self._listeners = ListenerList()
        self._closed = False

    @property
    def state(self) -> InventoryState:
        return self._state

    @property
    def closed(self) -> bool:
        return self._closed

    def watch(self, listener: Callable[[InventoryState], None]) -> Callable[[], None]:
        return self._listeners.add(listener)

    async def load(self, force: bool = False) -> InventoryState:
        self._publish(replace(self._state, loading=True, error=None))
        try:
            snap = await self.cache.get_snapshot(force_refresh=force)
        except InventoryDashboardError as e:
            self._publish(replace(self._state, loading=False, error=e.message))
            return self._state
        self._show(snap, error=None)
        return self._state

    async def refresh(self) -> InventoryState:
        return await self.load(force=True)

    async def create_material(self, new: NewMaterial) -> MaterialRef:
        try:
            ref = await self.cache.create_material(new)
        except InventoryDashboardError as e:
            self._publish(replace(self._state, loading=False, error=e.message))
            raise
        self._sync_after_write()
        return ref

    async def update_stock(self, material_id: str, change: float, comment: str) -> None:
        try:
            await self.cache.update_stock(material_id, change, comment)
        except InventoryDashboardError as e:
            self._publish(replace(self._state, loading=False, error=e.message))
            raise
        self._sync_after_write()

    async def update_material(self, material_id: str, edit: MaterialEdit) -> None:
        try:
            await self.cache.update_material(material_id, edit)
        except InventoryDashboardError as e:
            self._publish(replace(self._state, loading=False, error=e.message))
            raise
        self._sync_after_write()

    async def search_materials(self, query: str) -> List[Material]:
        results = await self.cache.search_materials(query)
        if not results and self.cache.last_error:
            self._publish(replace(self._state, error=self.cache.last_error))
        return results

    def close(self) -> None:
        self._closed = True
        self._listeners.clear()

    # ----------------------------- Internals -----------------------------

    def _sync_after_write(self) -> None:
        snap = self.cache.snapshot
        if snap is not None:
            self._show(snap, error=None)
        else:
            # refresh failed: keep what is on screen, surface why it is stale
            self._publish(replace(self._state, loading=False, error=self.cache.last_error))

    def _show(self, snap: InventorySnapshot, error: Optional[str]) -> None:
        self._publish(
            InventoryState(
                materials=snap.materials,
                movements=snap.movements,
                stats=snap.stats,
                loading=False,
                error=error,
            )
        )

    def _publish(self, state: InventoryState) -> None:
        if self._closed:
            return
        self._state = state
        self._listeners.emit(state)
