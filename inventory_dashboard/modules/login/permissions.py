# inventory_dashboard/modules/login/permissions.py
from __future__ import annotations

from enum import Enum
from typing import Dict, FrozenSet, Optional, Union


class Role(str, Enum):
    """Fine-grained role stored on the backend profile row."""
    ADMIN_PADRE = "admin_padre"
    ADMIN = "admin"
    TECNICO = "tecnico"


class AppRole(str, Enum):
    """Coarse three-value projection kept for older checks and display."""
    ADMIN = "admin"
    USER = "user"
    VIEWER = "viewer"


class Capability(str, Enum):
    READ = "read"
    WRITE = "write"
    ADMIN = "admin"
    ADMIN_PADRE = "admin_padre"
    EDIT_MATERIALS = "edit_materials"
    USER_MANAGEMENT = "user_management"


PERMISSIONS: Dict[Capability, FrozenSet[Role]] = {
    Capability.READ: frozenset({Role.ADMIN_PADRE, Role.ADMIN, Role.TECNICO}),
    Capability.WRITE: frozenset({Role.ADMIN_PADRE, Role.ADMIN, Role.TECNICO}),
    Capability.ADMIN: frozenset({Role.ADMIN_PADRE, Role.ADMIN}),
    Capability.ADMIN_PADRE: frozenset({Role.ADMIN_PADRE}),
    Capability.EDIT_MATERIALS: frozenset({Role.ADMIN_PADRE, Role.ADMIN}),
    Capability.USER_MANAGEMENT: frozenset({Role.ADMIN_PADRE}),
}

# Every capability must have a row; a new enum member without one fails at import.
_missing = set(Capability) - set(PERMISSIONS)
if _missing:
    raise RuntimeError(f"Permission table has no entry for: {sorted(c.value for c in _missing)}")

DEFAULT_ROLE = Role.TECNICO
DEFAULT_APP_ROLE = AppRole.USER


def parse_role(value: Optional[str]) -> Optional[Role]:
    try:
        return Role((value or "").strip())
    except ValueError:
        return None


def coarsen_role(original_role: Optional[str]) -> AppRole:
    role = parse_role(original_role)
    if role in (Role.ADMIN_PADRE, Role.ADMIN):
        return AppRole.ADMIN
    if role is Role.TECNICO:
        return AppRole.USER
    return AppRole.VIEWER


def to_backend_role(app_role: Union[AppRole, str]) -> Role:
    """Inverse projection used when an admin assigns a coarse role."""
    return Role.ADMIN if AppRole(app_role) is AppRole.ADMIN else Role.TECNICO


def is_allowed(original_role: Optional[str], capability: Union[Capability, str]) -> bool:
    """
    True if `original_role` holds `capability`.

    Unknown or missing roles hold nothing. An unknown capability name is a
    programming error and raises ValueError.
    """
    cap = Capability(capability)
    role = parse_role(original_role)
    if role is None:
        return False
    return role in PERMISSIONS[cap]
