"""
Row -> record mapping for the backend tables.

Conventions:
- Input rows are plain dicts as returned by the PostgREST client.
- Numeric columns may arrive as int, float, numeric strings or NULL; they are
  normalised to float here so the UI never has to care.
- Timestamps are parsed to aware datetimes (None when missing/unparseable).
"""

from __future__ import annotations

from typing import Any, Mapping, Optional

from ..constants import NO_CATEGORY, NO_COMMENT, NO_LOCATION
from ..utils.helpers import parse_timestamp, short_id
from ..utils.validators import try_parse_float
from .records import Material, Movement, MovementType


def _num(value: Any, default: float = 0.0) -> float:
    ok, val = try_parse_float(value)
    return val if ok and val is not None else default


def _text(row: Mapping[str, Any], key: str, default: str = "") -> str:
    value = row.get(key)
    if value is None:
        return default
    value = str(value).strip()
    return value or default


def material_from_row(row: Mapping[str, Any]) -> Material:
    current = _num(row.get("current_stock"))
    initial = row.get("initial_stock")
    return Material(
        id=str(row["id"]),
        code=_text(row, "code"),
        name=_text(row, "name"),
        category=_text(row, "category", NO_CATEGORY),
        location=_text(row, "location", NO_LOCATION),
        current_stock=current,
        min_stock=_num(row.get("min_stock")),
        initial_stock=_num(initial, current) if initial is not None else current,
        created_at=parse_timestamp(row.get("created_at")),
        updated_at=parse_timestamp(row.get("updated_at")),
        unit=_text(row, "unit"),
        unit_price=_num(row.get("unit_price")),
    )


def movement_type_from_text(value: Optional[str]) -> MovementType:
    try:
        return MovementType((value or "").strip().lower())
    except ValueError:
        return MovementType.CREATE


def movement_from_row(row: Mapping[str, Any]) -> Movement:
    """
    Map an inventory_movements row.

    The table stores unsigned quantities; decreases come out negative here.
    Missing joined names fall back to a short id label.
    """
    mtype = movement_type_from_text(row.get("movement_type"))
    qty = abs(_num(row.get("quantity")))
    material_id = _text(row, "item_id")
    user_id = _text(row, "user_id")
    return Movement(
        id=str(row["id"]),
        material_id=material_id,
        material_name=_text(row, "item_name") or f"Material {short_id(material_id)}",
        type=mtype,
        quantity=-qty if mtype is MovementType.DECREASE else qty,
        responsible=_text(row, "user_email") or f"User {short_id(user_id)}",
        comment=_text(row, "comment") or _text(row, "reason") or NO_COMMENT,
        timestamp=parse_timestamp(row.get("created_at")),
    )


def stock_levels(rows) -> list[tuple[float, float]]:
    """(current_stock, min_stock) pairs for InventoryStats.from_levels."""
    return [(_num(r.get("current_stock")), _num(r.get("min_stock"))) for r in rows or []]
