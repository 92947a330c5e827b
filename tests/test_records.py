from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

from inventory_dashboard.backend.records import (
    AuthEventKind,
    InventoryStats,
    MaterialEdit,
    MovementType,
    Profile,
)
from inventory_dashboard.backend.rows import (
    material_from_row,
    movement_from_row,
    movement_type_from_text,
    stock_levels,
)


def test_stats_counts_critical_and_low_separately():
    stats = InventoryStats.from_levels([(0, 2), (1, 5), (10, 2)])
    assert stats.critical_stock == 1
    assert stats.low_stock == 1
    assert stats.total_materials == 3


def test_negative_stock_is_neither_low_nor_critical():
    stats = InventoryStats.from_levels([(-2, 5), (-0.5, 0)])
    assert stats.total_materials == 2
    assert stats.low_stock == 0
    assert stats.critical_stock == 0


def test_stats_from_records_counts_only_todays_movements(material):
    from inventory_dashboard.backend.records import Movement

    now = datetime.now(timezone.utc)
    moves = [
        Movement("a", "m1", "A", MovementType.INCREASE, 1, "x", "c", now),
        Movement("b", "m1", "A", MovementType.DECREASE, -1, "x", "c", now - timedelta(days=2)),
        Movement("c", "m1", "A", MovementType.CREATE, 1, "x", "c", None),
    ]
    stats = InventoryStats.from_records(
        [material("m1", 0, 2), material("m2", 1, 5), material("m3", 10, 2)],
        moves,
        today=now.astimezone().date(),
    )
    assert (stats.critical_stock, stats.low_stock, stats.total_movements) == (1, 1, 1)


def test_zero_stats():
    assert InventoryStats.zero() == InventoryStats(0, 0, 0, 0)


def test_material_row_mapping_with_fallbacks():
    m = material_from_row({
        "id": 7,
        "code": "MAT_123456",
        "name": " Cable ",
        "category": None,
        "location": "",
        "current_stock": "4",
        "min_stock": None,
        "created_at": "2025-02-01T10:00:00Z",
    })
    assert m.id == "7"
    assert m.name == "Cable"
    assert m.category == "Uncategorized"
    assert m.location == "Unassigned"
    assert m.current_stock == 4.0
    assert m.min_stock == 0.0
    assert m.initial_stock == 4.0
    assert m.created_at == datetime(2025, 2, 1, 10, tzinfo=timezone.utc)
    assert m.updated_at is None
    assert m.unit == ""
    assert m.unit_price == 0.0


def test_material_row_carries_unit_and_price():
    m = material_from_row({"id": "m9", "unit": " m ", "unit_price": "12.5", "current_stock": 1})
    assert m.unit == "m"
    assert m.unit_price == 12.5
    assert MaterialEdit.of(m) == MaterialEdit(
        name="", category="Uncategorized", location="Unassigned", min_stock=0.0, unit_price=12.5, unit="m"
    )


def test_movement_row_mapping_signs_decreases():
    mv = movement_from_row({
        "id": "mv1",
        "item_id": "abcdef123456",
        "movement_type": "DECREASE",
        "quantity": 3,
        "user_id": "user-987654321",
        "created_at": "2025-02-01T10:00:00+00:00",
    })
    assert mv.type is MovementType.DECREASE
    assert mv.quantity == -3
    assert mv.material_name == "Material abcdef12"
    assert mv.responsible == "User user-987"
    assert mv.comment == "No comment"


def test_movement_comment_falls_back_to_reason():
    mv = movement_from_row({"id": 1, "movement_type": "increase", "quantity": -2, "reason": "restock"})
    assert mv.quantity == 2
    assert mv.comment == "restock"


def test_unknown_movement_type_reads_as_create():
    assert movement_type_from_text("entrada") is MovementType.CREATE
    assert movement_type_from_text(None) is MovementType.CREATE
    assert movement_type_from_text(" Increase ") is MovementType.INCREASE


def test_stock_levels_pairs():
    assert stock_levels([{"current_stock": "2", "min_stock": None}]) == [(2.0, 0.0)]
    assert stock_levels(None) == []


def test_auth_event_kind_parsing():
    assert AuthEventKind.parse("SIGNED_IN") is AuthEventKind.SIGNED_IN
    assert AuthEventKind.parse("signed_out") is AuthEventKind.SIGNED_OUT
    assert AuthEventKind.parse("USER_UPDATED") is AuthEventKind.OTHER
    assert AuthEventKind.parse(None) is AuthEventKind.OTHER


def test_profile_from_mapping():
    p = Profile.from_mapping({"id": "u1", "role": None, "full_name": "", "created_at": "2025-01-01"})
    assert p.role == ""
    assert p.full_name is None
    assert p.created_at.date() == date(2025, 1, 1)


def test_profile_name_is_read_from_nombre_completo():
    p = Profile.from_mapping({"id": "u1", "role": "admin", "nombre_completo": "Juan Perez"})
    assert p.full_name == "Juan Perez"
    legacy = Profile.from_mapping({"id": "u2", "role": "admin", "full_name": "Ana Ruiz"})
    assert legacy.full_name == "Ana Ruiz"
