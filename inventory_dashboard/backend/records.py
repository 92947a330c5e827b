"""
Value records exchanged between the backend wrappers and the modules.

Every record is frozen: snapshots and sessions are replaced wholesale, never
patched field by field.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Iterable, Mapping, Optional, Tuple

from ..utils.helpers import parse_timestamp


class MovementType(str, Enum):
    CREATE = "create"
    INCREASE = "increase"
    DECREASE = "decrease"


@dataclass(frozen=True)
class Material:
    id: str
    code: str
    name: str
    category: str
    location: str
    current_stock: float
    min_stock: float
    initial_stock: float
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    unit: str = ""
    unit_price: float = 0.0

    @property
    def is_critical(self) -> bool:
        return self.current_stock == 0

    @property
    def is_low(self) -> bool:
        return 0 < self.current_stock <= self.min_stock


@dataclass(frozen=True)
class Movement:
    id: str
    material_id: str
    material_name: str
    type: MovementType
    quantity: float  # negative for decreases
    responsible: str
    comment: str
    timestamp: Optional[datetime] = None


@dataclass(frozen=True)
class InventoryStats:
    total_materials: int = 0
    low_stock: int = 0
    critical_stock: int = 0
    total_movements: int = 0

    @classmethod
    def zero(cls) -> "InventoryStats":
        return cls()

    @classmethod
    def from_levels(
        cls,
        levels: Iterable[Tuple[float, Optional[float]]],
        movements_today: int = 0,
    ) -> "InventoryStats":
        """
        Derive the KPI block from (current_stock, min_stock) pairs.

        low      = 0 < current <= min
        critical = current == 0
        """
        total = low = critical = 0
        for current, minimum in levels:
            total += 1
            current = float(current or 0)
            minimum = float(minimum or 0)
            if current == 0:
                critical += 1
            elif 0 < current <= minimum:
                low += 1
        return cls(
            total_materials=total,
            low_stock=low,
            critical_stock=critical,
            total_movements=int(movements_today),
        )

    @classmethod
    def from_records(
        cls,
        materials: Iterable[Material],
        movements: Iterable[Movement] = (),
        today: Optional[date] = None,
    ) -> "InventoryStats":
        today = today or date.today()
        todays = sum(
            1 for m in movements
            if m.timestamp is not None and m.timestamp.astimezone().date() == today
        )
        return cls.from_levels(((m.current_stock, m.min_stock) for m in materials), todays)


@dataclass(frozen=True)
class NewMaterial:
    """Create-material request as entered in the form."""
    code: str
    name: str
    category: str = ""
    location: str = ""
    quantity: float = 0.0
    min_stock: float = 0.0
    unit_price: float = 0.0
    unit: str = ""
    comment: str = ""


@dataclass(frozen=True)
class MaterialEdit:
    """
    Descriptive fields of an existing material. Stock levels are not part of
    it: they only move through stock movements.
    """
    name: str
    category: str = ""
    location: str = ""
    min_stock: float = 0.0
    unit_price: float = 0.0
    unit: str = ""

    @classmethod
    def of(cls, m: Material) -> "MaterialEdit":
        return cls(
            name=m.name,
            category=m.category,
            location=m.location,
            min_stock=m.min_stock,
            unit_price=m.unit_price,
            unit=m.unit,
        )


@dataclass(frozen=True)
class MaterialRef:
    """What a successful create returns: the code sent plus the webhook's answer."""
    code: str
    message: str
    data: Any = None


@dataclass(frozen=True)
class AuthSession:
    user_id: str
    email: str = ""


class AuthEventKind(str, Enum):
    SIGNED_IN = "SIGNED_IN"
    SIGNED_OUT = "SIGNED_OUT"
    TOKEN_REFRESHED = "TOKEN_REFRESHED"
    OTHER = "OTHER"

    @classmethod
    def parse(cls, raw: Any) -> "AuthEventKind":
        text = str(getattr(raw, "value", raw) or "").upper()
        try:
            return cls(text)
        except ValueError:
            return cls.OTHER


@dataclass(frozen=True)
class AuthEvent:
    kind: AuthEventKind
    session: Optional[AuthSession] = None
    raw_kind: str = field(default="", compare=False)


@dataclass(frozen=True)
class Profile:
    id: str
    role: str
    full_name: Optional[str] = None
    email: Optional[str] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_mapping(cls, m: Mapping[str, Any]) -> "Profile":
        return cls(
            id=str(m["id"]),
            role=str(m.get("role") or ""),
            full_name=m.get("nombre_completo") or m.get("full_name") or None,
            email=m.get("email") or None,
            created_at=parse_timestamp(m.get("created_at")),
        )
