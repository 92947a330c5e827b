"""
Client for the workflow-automation webhook that performs every write.

The app never mutates backend rows itself: it POSTs a tagged request and the
workflow applies it. Requests use `requests` and run in a worker thread so the
event loop stays responsive.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

import requests

from ..constants import DEFAULT_UNIT, WEBHOOK_TIMEOUT
from ..errors import MutationError
from .records import NewMaterial

_log = logging.getLogger(__name__)

DEFAULT_SUCCESS_MESSAGE = "Operation completed successfully"


class MutationAction(str, Enum):
    CREATE_MATERIAL = "CreateMaterial"
    INCREASE_STOCK = "IncreaseStock"
    DECREASE_STOCK = "DecreaseStock"

    @property
    def operation(self) -> str:
        return {
            MutationAction.CREATE_MATERIAL: "create",
            MutationAction.INCREASE_STOCK: "increase",
            MutationAction.DECREASE_STOCK: "decrease",
        }[self]


@dataclass(frozen=True)
class Actor:
    """Who is asking; stamped on every payload."""
    user_id: str
    email: str = ""


@dataclass(frozen=True)
class WebhookResponse:
    status: str
    message: str
    operation: str
    data: Any = None

    @property
    def ok(self) -> bool:
        return self.status == "success"


def generate_material_code(now_ms: Optional[int] = None) -> str:
    """'MAT_' + last six digits of the epoch milliseconds."""
    now_ms = int(time.time() * 1000) if now_ms is None else int(now_ms)
    return f"MAT_{str(now_ms)[-6:]}"


class MutationWebhook:
    def __init__(
        self,
        url: str,
        timeout: float = WEBHOOK_TIMEOUT,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.url = url
        self.timeout = timeout
        self._session = session or requests.Session()

    # ---------------------------- Public API ----------------------------

    async def create_material(self, new: NewMaterial, actor: Actor) -> WebhookResponse:
        payload = {
            "code": new.code,
            "name": new.name,
            "category": new.category,
            "location": new.location,
            "quantity": new.quantity,
            "minStock": new.min_stock,
            "unitPrice": new.unit_price or 0,
            "unit": new.unit or DEFAULT_UNIT,
            "comment": new.comment,
        }
        return await self.send(MutationAction.CREATE_MATERIAL, payload, actor)

    async def increase_stock(self, material_id: str, quantity: float, comment: str, actor: Actor) -> WebhookResponse:
        payload = {"materialId": material_id, "quantity": quantity, "comment": comment}
        return await self.send(MutationAction.INCREASE_STOCK, payload, actor)

    async def decrease_stock(self, material_id: str, quantity: float, comment: str, actor: Actor) -> WebhookResponse:
        payload = {"materialId": material_id, "quantity": quantity, "comment": comment}
        return await self.send(MutationAction.DECREASE_STOCK, payload, actor)

    async def send(self, action: MutationAction, fields: Dict[str, Any], actor: Actor) -> WebhookResponse:
        payload = {
            "action": action.value,
            **fields,
            "actingUserId": actor.user_id,
            "actingUserEmail": actor.email,
        }
        response = await asyncio.to_thread(self._post, action, payload)
        if not response.ok:
            _log.warning("Webhook rejected %s: %s", action.value, response.message)
            raise MutationError(response.message)
        _log.info("Webhook accepted %s: %s", action.value, response.message)
        return response

    # ----------------------------- Internals -----------------------------

    def _post(self, action: MutationAction, payload: Dict[str, Any]) -> WebhookResponse:
        _log.debug("POST %s action=%s", self.url, action.value)
        try:
            resp = self._session.post(self.url, json=payload, timeout=self.timeout)
        except requests.Timeout as e:
            raise MutationError(f"The webhook did not answer within {self.timeout:g}s") from e
        except requests.RequestException as e:
            raise MutationError(f"Could not reach the webhook: {e}") from e

        if not resp.ok:
            raise MutationError(f"HTTP {resp.status_code} {resp.reason or ''}".strip())

        try:
            body = resp.json()
        except ValueError:
            body = None
        return normalize_response(action, body)


def normalize_response(action: MutationAction, body: Any) -> WebhookResponse:
    """
    Fold the shapes the workflow answers with into one WebhookResponse:
      - {"status": ..., "message": ...}  -> taken as-is
      - {"message": ...}                 -> success with that message
      - anything else on a 2xx           -> success with a default message
    """
    if isinstance(body, dict) and body.get("status"):
        status = str(body["status"]).lower()
        return WebhookResponse(
            status="success" if status == "success" else "error",
            message=str(body.get("message") or (DEFAULT_SUCCESS_MESSAGE if status == "success" else "Unknown error")),
            operation=str(body.get("operation") or action.operation),
            data=body.get("data"),
        )
    if isinstance(body, dict) and body.get("message"):
        return WebhookResponse("success", str(body["message"]), action.operation, body)
    return WebhookResponse("success", DEFAULT_SUCCESS_MESSAGE, action.operation, body)
