# inventory_dashboard/modules/login/__init__.py

"""
Login module package exports.

- SessionManager: who is signed in, reconciled from the backend's session
  query and its auth-event stream.
- User / Session: the frozen values it publishes.
- LoginController / LoginDialog: the Qt sign-in flow. Imported from their own
  modules so the session core stays usable without a display.
"""

from .model import Session, SessionPhase, User
from .permissions import AppRole, Capability, Role, is_allowed
from .session import SessionManager

__all__ = [
    "AppRole",
    "Capability",
    "Role",
    "Session",
    "SessionManager",
    "SessionPhase",
    "User",
    "is_allowed",
]
