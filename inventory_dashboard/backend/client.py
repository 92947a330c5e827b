"""
Thin async wrapper over the hosted backend (auth + PostgREST tables).

This is the only module that talks to supabase. Everything above it sees
records from `records.py` and errors from `errors.py`:
- PostgREST / transport failures  -> BackendError
- rejected credentials            -> AuthenticationError

No deadlines are applied here; callers bound each step with `with_timeout`.
"""

from __future__ import annotations

import asyncio
import logging
import re
from datetime import datetime, timezone
from typing import Any, Callable, List, Optional, Protocol

import httpx
from supabase import AsyncClient, AuthError, PostgrestAPIError, acreate_client

from ..config import Settings
from ..constants import (
    ACTIVE_STATUS,
    MOVEMENTS_FETCH_LIMIT,
    TABLE_MATERIALS,
    TABLE_MOVEMENTS,
    TABLE_PROFILES,
)
from ..errors import AuthenticationError, BackendError
from ..utils.helpers import start_of_today_iso
from .records import (
    AuthEvent,
    AuthEventKind,
    AuthSession,
    InventoryStats,
    Material,
    MaterialEdit,
    Movement,
    Profile,
)
from .rows import material_from_row, movement_from_row, stock_levels

_log = logging.getLogger(__name__)

# PostgREST `or=(...)` filters use these as syntax; strip them from user input.
_FILTER_META = re.compile(r"[,()%*\\]")


class Subscription(Protocol):
    def unsubscribe(self) -> None: ...


class SupabaseBackend:
    """
    Read side of the backend plus session handling.

    Public API (all coroutines unless noted):
      - get_session() -> AuthSession | None
      - sign_in(email, password) -> AuthSession
      - sign_out()
      - get_user_profile(user_id) -> dict | None
      - query_materials() / query_movements(limit) / query_stats()
      - search_materials(query), list_categories(), list_locations()
      - update_material(material_id, edit, updated_by)
      - list_profiles(), update_profile_role(user_id, role),
        update_profile_name(user_id, full_name)
      - subscribe_auth_events(callback) -> Subscription   (plain method)
    """

    def __init__(self, client: AsyncClient) -> None:
        self.client = client

    @classmethod
    async def connect(cls, settings: Settings) -> "SupabaseBackend":
        client = await acreate_client(settings.supabase_url, settings.supabase_anon_key)
        return cls(client)

    # ------------------------------ auth ------------------------------

    @staticmethod
    def _to_auth_session(session: Any) -> Optional[AuthSession]:
        user = getattr(session, "user", None)
        if user is None or not getattr(user, "id", None):
            return None
        return AuthSession(user_id=str(user.id), email=str(getattr(user, "email", "") or ""))

    async def get_session(self) -> Optional[AuthSession]:
        try:
            session = await self.client.auth.get_session()
        except AuthError as e:
            raise BackendError(f"Could not read the current session: {e.message}") from e
        except httpx.HTTPError as e:
            raise BackendError(f"Could not read the current session: {e}") from e
        return self._to_auth_session(session)

    async def sign_in(self, email: str, password: str) -> AuthSession:
        try:
            response = await self.client.auth.sign_in_with_password(
                {"email": email, "password": password}
            )
        except AuthError as e:
            raise AuthenticationError(e.message) from e
        except httpx.HTTPError as e:
            raise BackendError(f"Sign-in request failed: {e}") from e

        auth = self._to_auth_session(response)
        if auth is None:
            raise AuthenticationError("Could not read user information from the sign-in response")
        return auth

    async def sign_out(self) -> None:
        try:
            await self.client.auth.sign_out()
        except AuthError as e:
            raise BackendError(f"Sign-out failed: {e.message}") from e
        except httpx.HTTPError as e:
            raise BackendError(f"Sign-out failed: {e}") from e

    def subscribe_auth_events(self, callback: Callable[[AuthEvent], None]) -> Subscription:
        """Relay backend auth notifications as AuthEvent records."""

        def _relay(event: Any, session: Any) -> None:
            kind = AuthEventKind.parse(event)
            callback(AuthEvent(kind=kind, session=self._to_auth_session(session), raw_kind=str(event)))

        return self.client.auth.on_auth_state_change(_relay)

    # ------------------------------ rows ------------------------------

    async def _rows(self, query, what: str) -> List[dict]:
        try:
            response = await query.execute()
        except PostgrestAPIError as e:
            raise BackendError(f"Error loading {what}: {e.message}") from e
        except httpx.HTTPError as e:
            raise BackendError(f"Error loading {what}: {e}") from e
        return list(response.data or [])

    async def get_user_profile(self, user_id: str) -> Optional[dict]:
        rows = await self._rows(
            self.client.table(TABLE_PROFILES).select("*").eq("id", user_id).limit(1),
            "profile",
        )
        return rows[0] if rows else None

    async def query_materials(self) -> List[Material]:
        rows = await self._rows(
            self.client.table(TABLE_MATERIALS)
            .select("*")
            .eq("status", ACTIVE_STATUS)
            .order("created_at", desc=True),
            "materials",
        )
        if not rows:
            _log.warning("No active materials found")
        return [material_from_row(r) for r in rows]

    async def query_movements(self, limit: int = MOVEMENTS_FETCH_LIMIT) -> List[Movement]:
        rows = await self._rows(
            self.client.table(TABLE_MOVEMENTS)
            .select("*")
            .order("created_at", desc=True)
            .limit(max(1, int(limit))),
            "movements",
        )
        return [movement_from_row(r) for r in rows]

    async def query_stats(self) -> InventoryStats:
        """
        KPI block: stock levels of active materials + count of today's movements.

        Either half failing degrades to empty for that half (logged), the
        other half still counts.
        """
        levels_q = (
            self.client.table(TABLE_MATERIALS)
            .select("current_stock, min_stock")
            .eq("status", ACTIVE_STATUS)
        )
        today_q = (
            self.client.table(TABLE_MOVEMENTS)
            .select("id")
            .gte("created_at", start_of_today_iso())
        )
        levels, today = await asyncio.gather(
            self._rows(levels_q, "stock levels"),
            self._rows(today_q, "today's movements"),
            return_exceptions=True,
        )
        if isinstance(levels, BaseException):
            _log.warning("Stats: stock levels unavailable: %s", levels)
            levels = []
        if isinstance(today, BaseException):
            _log.warning("Stats: today's movements unavailable: %s", today)
            today = []
        return InventoryStats.from_levels(stock_levels(levels), len(today))

    async def search_materials(self, query: str) -> List[Material]:
        term = _FILTER_META.sub(" ", query or "").strip()
        if not term:
            return []
        pattern = f"%{term}%"
        rows = await self._rows(
            self.client.table(TABLE_MATERIALS)
            .select("*")
            .eq("status", ACTIVE_STATUS)
            .or_(
                f"name.ilike.{pattern},code.ilike.{pattern},"
                f"category.ilike.{pattern},location.ilike.{pattern}"
            )
            .order("created_at", desc=True),
            "search results",
        )
        return [material_from_row(r) for r in rows]

    async def _distinct(self, column: str) -> List[str]:
        rows = await self._rows(
            self.client.table(TABLE_MATERIALS).select(column).eq("status", ACTIVE_STATUS),
            f"{column} values",
        )
        values = {str(r.get(column)).strip() for r in rows if r.get(column)}
        return sorted(v for v in values if v)

    async def list_categories(self) -> List[str]:
        return await self._distinct("category")

    async def list_locations(self) -> List[str]:
        return await self._distinct("location")

    async def update_material(self, material_id: str, edit: MaterialEdit, updated_by: str) -> None:
        """
        Write descriptive fields straight to the materials table. Row-level
        security limits this to admin roles; an update that matches no row
        is reported as a failure.
        """
        rows = await self._rows(
            self.client.table(TABLE_MATERIALS)
            .update({
                "name": edit.name,
                "category": edit.category or None,
                "location": edit.location or None,
                "min_stock": edit.min_stock,
                "unit_price": edit.unit_price,
                "unit": edit.unit or None,
                "updated_by": updated_by,
                "updated_at": datetime.now(timezone.utc).isoformat(),
            })
            .eq("id", material_id),
            "material update",
        )
        if not rows:
            raise BackendError("The material was not updated; it may have been removed or you lack access")

    # ---------------------------- profiles ----------------------------

    async def list_profiles(self) -> List[Profile]:
        rows = await self._rows(
            self.client.table(TABLE_PROFILES).select("*").order("created_at", desc=True),
            "profiles",
        )
        return [Profile.from_mapping(r) for r in rows]

    async def update_profile_role(self, user_id: str, role: str) -> None:
        await self._rows(
            self.client.table(TABLE_PROFILES).update({"role": role}).eq("id", user_id),
            "profile update",
        )

    async def update_profile_name(self, user_id: str, full_name: str) -> None:
        await self._rows(
            self.client.table(TABLE_PROFILES).update({"nombre_completo": full_name}).eq("id", user_id),
            "profile update",
        )
