# inventory_dashboard/modules/login/model.py
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ...backend.records import AuthSession, Profile
from .permissions import DEFAULT_APP_ROLE, DEFAULT_ROLE, AppRole, coarsen_role


@dataclass(frozen=True)
class User:
    """
    App-facing user object (no secrets).

    `original_role` is the backend's fine-grained role and the only input to
    permission checks; `role` is its coarse projection for display.
    `degraded` is True when the profile row could not be read.
    """
    id: str
    email: str
    display_name: str
    role: AppRole
    original_role: str
    avatar_url: Optional[str] = None
    degraded: bool = False

    @classmethod
    def from_profile(cls, auth: AuthSession, profile: Profile) -> "User":
        original = profile.role or DEFAULT_ROLE.value
        return cls(
            id=auth.user_id,
            email=auth.email or profile.email or "",
            display_name=display_name_for(profile.full_name, auth.email or profile.email),
            role=coarsen_role(original),
            original_role=original,
        )

    @classmethod
    def degraded_for(cls, auth: AuthSession) -> "User":
        return cls(
            id=auth.user_id,
            email=auth.email,
            display_name=display_name_for(None, auth.email),
            role=DEFAULT_APP_ROLE,
            original_role=DEFAULT_ROLE.value,
            degraded=True,
        )


def display_name_for(full_name: Optional[str], email: Optional[str]) -> str:
    name = (full_name or "").strip()
    if name:
        return name
    local = (email or "").split("@", 1)[0].strip()
    return local or "User"


class SessionPhase(str, Enum):
    UNINITIALIZED = "uninitialized"
    CHECKING = "checking"
    AUTHENTICATED = "authenticated"
    ANONYMOUS = "anonymous"


@dataclass(frozen=True)
class Session:
    """Replaced wholesale on every transition."""
    user: Optional[User] = None
    loading: bool = True
    error: Optional[str] = None
    phase: SessionPhase = SessionPhase.UNINITIALIZED

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None
