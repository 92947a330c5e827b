# inventory_dashboard/modules/login/session.py
from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from typing import Any, Callable, Iterable, Optional, Set, Union

from ...backend.records import AuthEvent, AuthEventKind, AuthSession, Profile
from ...constants import (
    LISTENER_PROFILE_TIMEOUT,
    PROFILE_FETCH_TIMEOUT,
    SESSION_CHECK_TIMEOUT,
    SIGNED_IN_DEBOUNCE_SECONDS,
)
from ...errors import (
    AuthenticationError,
    BackendError,
    ProfileUnavailableError,
    SessionTimeoutError,
    ValidationError,
)
from ...utils.callbacks import ListenerList, safe_call
from ...utils.debounce import Debouncer
from ...utils.helpers import short_id
from ...utils.timeouts import with_timeout
from .model import Session, SessionPhase, User
from .permissions import Capability, is_allowed

_log = logging.getLogger(__name__)


class SessionManager:
    """
    Single source of truth for "who is signed in".

    The backend reports sessions through two channels that can race: the
    point-in-time `get_session()` query and the pushed auth-event stream.
    This class folds both into one `Session` value, replaced wholesale on
    every transition.

    Public API:
      - state -> Session
      - start()                     subscribe to auth events + initial check
      - check_auth() -> Session     concurrent callers share one check
      - login(email, password) -> User
      - logout()
      - on_session_change(cb) -> unsubscribe   cb(User | None)
      - watch(listener) -> unsubscribe         listener(Session)
      - has_permission(capability) -> bool
      - close()

    Ordering rules:
      - signed-in events are debounced; a burst applies only its last event.
      - signed-out (and logout) cancel the pending signed-in timer and bump
        the epoch, so a profile fetch started earlier can never re-apply a
        user afterwards.
      - token-refreshed re-announces the current user; state is untouched.
    """

    def __init__(
        self,
        backend: Any,
        *,
        sign_out_hooks: Iterable[Callable[[], None]] = (),
        check_timeout: float = SESSION_CHECK_TIMEOUT,
        profile_timeout: float = PROFILE_FETCH_TIMEOUT,
        listener_profile_timeout: float = LISTENER_PROFILE_TIMEOUT,
        debounce_delay: float = SIGNED_IN_DEBOUNCE_SECONDS,
    ) -> None:
        self.backend = backend
        self.sign_out_hooks = list(sign_out_hooks)
        self.check_timeout = check_timeout
        self.profile_timeout = profile_timeout
        self.listener_profile_timeout = listener_profile_timeout

        self._state = Session()
        self._watchers = ListenerList()
        self._callbacks = ListenerList()
        self._debounce = Debouncer(debounce_delay)
        self._subscription = None
        self._check_task: Optional[asyncio.Task] = None
        self._tasks: Set[asyncio.Task] = set()
        self._epoch = 0
        self._signin_seq = 0
        self._closed = False

    # ----------------------------- Public API -----------------------------

    @property
    def state(self) -> Session:
        return self._state

    @property
    def user(self) -> Optional[User]:
        return self._state.user

    async def start(self) -> Session:
        if self._subscription is None and not self._closed:
            self._subscription = self.backend.subscribe_auth_events(self._on_auth_event)
        return await self.check_auth()

    async def check_auth(self) -> Session:
        """
        Resolve the current session. Never raises for backend trouble:
        failures end in ANONYMOUS with `error` set.
        """
        if self._check_task is None or self._check_task.done():
            self._check_task = asyncio.ensure_future(self._run_check())
        else:
            _log.debug("Session check already running; joining it")
        # shield: one caller being cancelled must not cancel the shared check
        return await asyncio.shield(self._check_task)

    async def login(self, email: str, password: str) -> User:
        email = (email or "").strip()
        if not email or not password:
            raise ValidationError("Please enter both email and password.")

        self._debounce.cancel()
        epoch = self._epoch
        self._publish(Session(user=None, loading=True, phase=SessionPhase.CHECKING))
        try:
            auth = await with_timeout(self.backend.sign_in(email, password), self.check_timeout, "Sign-in")
        except (AuthenticationError, BackendError, SessionTimeoutError) as e:
            _log.warning("Sign-in failed for %s: %s", email, e.message)
            self._publish(Session(user=None, loading=False, error=e.message, phase=SessionPhase.ANONYMOUS))
            raise

        user = await self._load_user(auth, self.profile_timeout)
        if epoch == self._epoch:
            self._publish(Session(user=user, loading=False, phase=SessionPhase.AUTHENTICATED))
        _log.info("Signed in %s as %s", short_id(user.id), user.original_role)
        return user

    async def logout(self) -> None:
        """
        Revoke the backend session, then clear local state regardless.
        A revocation failure is kept in `state.error`.
        """
        self._debounce.cancel()
        self._epoch += 1
        error: Optional[str] = None
        try:
            await with_timeout(self.backend.sign_out(), self.check_timeout, "Sign-out")
        except (BackendError, SessionTimeoutError) as e:
            _log.warning("Sign-out failed; clearing local session anyway: %s", e.message)
            error = e.message
        self._become_anonymous(error)

    def on_session_change(self, callback: Callable[[Optional[User]], None]) -> Callable[[], None]:
        return self._callbacks.add(callback)

    def watch(self, listener: Callable[[Session], None]) -> Callable[[], None]:
        return self._watchers.add(listener)

    def has_permission(self, capability: Union[Capability, str]) -> bool:
        capability = Capability(capability)
        user = self._state.user
        if user is None:
            return False
        return is_allowed(user.original_role, capability)

    def close(self) -> None:
        """Stop delivering results; pending work finishes into a no-op."""
        if self._closed:
            return
        self._closed = True
        self._epoch += 1
        self._debounce.cancel()
        if self._subscription is not None:
            try:
                self._subscription.unsubscribe()
            except Exception:
                _log.exception("Failed to unsubscribe from auth events")
            self._subscription = None
        # signed-in applies have no awaiting caller; the shared check is left to
        # finish so its awaiters resolve, and the epoch bump makes it a no-op.
        for task in list(self._tasks):
            task.cancel()
        self._watchers.clear()
        self._callbacks.clear()

    # ----------------------------- Internals -----------------------------

    async def _run_check(self) -> Session:
        epoch = self._epoch
        self._publish(replace(self._state, loading=True, error=None, phase=SessionPhase.CHECKING))
        try:
            auth = await with_timeout(self.backend.get_session(), self.check_timeout, "Session check")
        except (BackendError, SessionTimeoutError) as e:
            _log.warning("Session check failed: %s", e.message)
            if epoch == self._epoch:
                self._publish(Session(user=None, loading=False, error=e.message, phase=SessionPhase.ANONYMOUS))
            return self._state

        if auth is None:
            if epoch == self._epoch:
                self._publish(Session(user=None, loading=False, phase=SessionPhase.ANONYMOUS))
            return self._state

        current = self._state.user
        if current is not None and current.id == auth.user_id:
            user = current
        else:
            user = await self._load_user(auth, self.profile_timeout)

        if epoch == self._epoch:
            self._publish(Session(user=user, loading=False, phase=SessionPhase.AUTHENTICATED))
        else:
            _log.debug("Session check result discarded; session ended meanwhile")
        return self._state

    async def _load_user(self, auth: AuthSession, timeout: float) -> User:
        """Profile -> full user; any profile failure -> degraded user."""
        try:
            profile = await self._fetch_profile(auth, timeout)
        except (ProfileUnavailableError, BackendError, SessionTimeoutError) as e:
            _log.warning("Profile for %s unavailable, using defaults: %s", short_id(auth.user_id), e.message)
            return User.degraded_for(auth)
        return User.from_profile(auth, profile)

    async def _fetch_profile(self, auth: AuthSession, timeout: float) -> Profile:
        row = await with_timeout(self.backend.get_user_profile(auth.user_id), timeout, "Profile fetch")
        if not row:
            raise ProfileUnavailableError("No profile row for this account")
        try:
            return Profile.from_mapping(row)
        except (KeyError, TypeError) as e:
            raise ProfileUnavailableError(f"Malformed profile row: {e}") from e

    def _on_auth_event(self, event: AuthEvent) -> None:
        if self._closed:
            return
        if event.kind is AuthEventKind.SIGNED_IN:
            if event.session is None:
                _log.debug("signed-in event without a session; ignored")
                return
            auth = event.session
            self._debounce.schedule(lambda: self._fire_signed_in(auth))
        elif event.kind is AuthEventKind.SIGNED_OUT:
            self._debounce.cancel()
            self._epoch += 1
            self._become_anonymous(None)
        elif event.kind is AuthEventKind.TOKEN_REFRESHED:
            self._callbacks.emit(self._state.user)
        else:
            _log.debug("Ignoring auth event %s", event.raw_kind or event.kind.value)

    def _fire_signed_in(self, auth: AuthSession) -> None:
        self._signin_seq += 1
        self._spawn(self._apply_signed_in(auth, self._signin_seq, self._epoch))

    async def _apply_signed_in(self, auth: AuthSession, seq: int, epoch: int) -> None:
        user = await self._load_user(auth, self.listener_profile_timeout)
        if self._closed or epoch != self._epoch or seq != self._signin_seq:
            _log.debug("Dropping stale signed-in result for %s", short_id(auth.user_id))
            return
        self._publish(Session(user=user, loading=False, phase=SessionPhase.AUTHENTICATED))
        self._callbacks.emit(user)

    def _become_anonymous(self, error: Optional[str]) -> None:
        for hook in self.sign_out_hooks:
            safe_call(hook)
        self._publish(Session(user=None, loading=False, error=error, phase=SessionPhase.ANONYMOUS))
        self._callbacks.emit(None)

    def _publish(self, session: Session) -> None:
        if self._closed:
            return
        self._state = session
        self._watchers.emit(session)

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(self._task_done)
        return task

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            _log.error("Session task failed", exc_info=task.exception())
