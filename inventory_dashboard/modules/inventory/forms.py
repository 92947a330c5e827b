# inventory_dashboard/modules/inventory/forms.py
from __future__ import annotations

from dataclasses import replace
from typing import Optional, Union

from ...backend.records import MaterialEdit, MovementType, NewMaterial
from ...errors import ValidationError
from ...utils.validators import is_finite_number, is_non_negative_number, non_empty, try_parse_float


def validate_stock_request(
    operation: Union[MovementType, str],
    quantity,
    current_stock: Optional[float],
    comment: str,
) -> float:
    """
    Check a stock adjustment before it is sent.

    `current_stock` is None when no material is selected. Returns the signed
    change (negative for decreases). Raises ValidationError; never touches
    the network.
    """
    if current_stock is None:
        raise ValidationError("Select a material first")

    try:
        op = MovementType(operation)
    except ValueError as e:
        raise ValidationError(f"Unknown operation: {operation!r}") from e
    if op is MovementType.CREATE:
        raise ValidationError("Use the new material form to create stock")

    ok, qty = try_parse_float(quantity)
    if ok and not is_finite_number(qty):
        raise ValidationError("Quantity must be a finite number")
    if not ok or qty is None or qty <= 0:
        raise ValidationError("Quantity must be greater than 0")

    if op is MovementType.DECREASE and qty > float(current_stock):
        raise ValidationError("Cannot remove more stock than available")

    if not non_empty(comment):
        raise ValidationError("A comment is required")

    return -qty if op is MovementType.DECREASE else qty


def validate_new_material(new: NewMaterial, require_code: bool = True) -> NewMaterial:
    """
    Check a create request. Returns a copy with text fields trimmed and
    numbers coerced to float. The form passes require_code=False because a
    blank code is generated later.
    """
    if not non_empty(new.name):
        raise ValidationError("Name is required")
    if require_code and not non_empty(new.code):
        raise ValidationError("Code is required")

    numbers = _amounts(
        new,
        (
            ("quantity", "Initial quantity"),
            ("min_stock", "Minimum stock"),
            ("unit_price", "Unit price"),
        ),
    )

    return replace(
        new,
        code=(new.code or "").strip(),
        name=new.name.strip(),
        category=(new.category or "").strip(),
        location=(new.location or "").strip(),
        unit=(new.unit or "").strip(),
        comment=(new.comment or "").strip(),
        **numbers,
    )


def validate_material_edit(edit: MaterialEdit) -> MaterialEdit:
    """Check an edit of an existing material; same trimming rules as a create."""
    if not non_empty(edit.name):
        raise ValidationError("Name is required")
    numbers = _amounts(edit, (("min_stock", "Minimum stock"), ("unit_price", "Unit price")))
    return replace(
        edit,
        name=edit.name.strip(),
        category=(edit.category or "").strip(),
        location=(edit.location or "").strip(),
        unit=(edit.unit or "").strip(),
        **numbers,
    )


def _amounts(record, fields) -> dict:
    """Blank -> 0; otherwise a finite, non-negative float per (field, label)."""
    numbers = {}
    for field_name, label in fields:
        value = getattr(record, field_name)
        if value in (None, ""):
            value = 0
        if not try_parse_float(value)[0]:
            raise ValidationError(f"{label} must be a number")
        if not is_finite_number(value):
            raise ValidationError(f"{label} must be a finite number")
        if not is_non_negative_number(value):
            raise ValidationError(f"{label} cannot be negative")
        numbers[field_name] = float(value)
    return numbers
