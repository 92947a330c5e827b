# inventory_dashboard/errors.py
from __future__ import annotations


class InventoryDashboardError(Exception):
    """Base class; `message` is always safe to show to the user."""

    default_message = "Unexpected error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ConfigurationError(InventoryDashboardError):
    default_message = "Invalid configuration"


class AuthenticationError(InventoryDashboardError):
    """Bad credentials, or an operation that needs a signed-in user ran without one."""

    default_message = "Authentication failed"


class SessionTimeoutError(InventoryDashboardError):
    """A bounded network step exceeded its deadline."""

    default_message = "The request timed out"


class ProfileUnavailableError(InventoryDashboardError):
    """
    The profile row for a valid session could not be read.

    Never reaches the UI: the session manager absorbs it into a degraded user.
    """

    default_message = "User profile unavailable"


class BackendError(InventoryDashboardError):
    default_message = "Backend request failed"


class MutationError(InventoryDashboardError):
    """The webhook reported a failure or could not be reached."""

    default_message = "The change could not be applied"


class ValidationError(InventoryDashboardError, ValueError):
    """Locally detected invalid input. Raised before any network call."""

    default_message = "Invalid input"


__all__ = [
    "InventoryDashboardError",
    "ConfigurationError",
    "AuthenticationError",
    "SessionTimeoutError",
    "ProfileUnavailableError",
    "BackendError",
    "MutationError",
    "ValidationError",
]
