# inventory_dashboard/backend/__init__.py
"""
Backend collaborators.

- SupabaseBackend: reads (materials, movements, stats, profiles) and session handling.
- MutationWebhook: every write, delegated to the workflow webhook.
"""

from .records import (
    AuthEvent,
    AuthEventKind,
    AuthSession,
    InventoryStats,
    Material,
    MaterialRef,
    Movement,
    MovementType,
    NewMaterial,
    Profile,
)
from .webhook import Actor, MutationAction, MutationWebhook, WebhookResponse, generate_material_code

__all__ = [
    "AuthEvent",
    "AuthEventKind",
    "AuthSession",
    "InventoryStats",
    "Material",
    "MaterialRef",
    "Movement",
    "MovementType",
    "NewMaterial",
    "Profile",
    "Actor",
    "MutationAction",
    "MutationWebhook",
    "WebhookResponse",
    "generate_material_code",
]
