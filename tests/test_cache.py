from __future__ import annotations

import asyncio

import pytest

from inventory_dashboard.backend.records import MaterialEdit, NewMaterial
from inventory_dashboard.errors import (
    AuthenticationError,
    BackendError,
    MutationError,
    SessionTimeoutError,
    ValidationError,
)
from inventory_dashboard.modules.inventory.cache import InventoryCache


def _stock(snapshot, material_id):
    return next(m.current_stock for m in snapshot.materials if m.id == material_id)


# ---------------------------
# Reads
# ---------------------------

def test_second_read_within_ttl_is_a_hit(cache, backend, clock):
    async def scenario():
        first = await cache.get_snapshot()
        clock.advance(10)
        second = await cache.get_snapshot()
        return first, second

    first, second = asyncio.run(scenario())
    assert second is first
    assert backend.calls["query_materials"] == 1
    assert backend.calls["query_movements"] == 1
    assert backend.calls["query_stats"] == 1


def test_expired_snapshot_is_refetched(cache, backend, clock):
    async def scenario():
        await cache.get_snapshot()
        clock.advance(cache.ttl + 1)
        assert cache.is_fresh() is False
        await cache.get_snapshot()

    asyncio.run(scenario())
    assert backend.calls["query_materials"] == 2


def test_concurrent_reads_share_one_fetch(cache, backend):
    backend.delay["query_materials"] = 0.02

    async def scenario():
        return await asyncio.gather(*(cache.get_snapshot() for _ in range(4)))

    snaps = asyncio.run(scenario())
    assert backend.calls["query_materials"] == 1
    assert all(s is snaps[0] for s in snaps)


def test_snapshot_contents(cache):
    snap = asyncio.run(cache.get_snapshot())
    assert [m.id for m in snap.materials] == ["m1", "m2", "m3"]
    assert snap.stats.total_materials == 3
    assert snap.stats.low_stock == 1
    assert snap.stats.critical_stock == 1
    assert snap.fetched_at == 1000.0


def test_forced_read_does_not_join_plain_fetch(cache, backend):
    backend.delay["query_materials"] = 0.02

    async def scenario():
        plain = asyncio.ensure_future(cache.get_snapshot())
        await asyncio.sleep(0)
        forced = await cache.get_snapshot(force_refresh=True)
        await plain
        return forced

    asyncio.run(scenario())
    assert backend.calls["query_materials"] == 2


def test_forced_reads_share_a_forced_fetch(cache, backend):
    backend.delay["query_materials"] = 0.02

    async def scenario():
        await asyncio.gather(
            cache.get_snapshot(force_refresh=True),
            cache.get_snapshot(force_refresh=True),
            cache.get_snapshot(),
        )

    asyncio.run(scenario())
    assert backend.calls["query_materials"] == 1


def test_fetch_started_before_invalidate_is_not_stored(cache, backend, material):
    backend.delay["query_materials"] = 0.03

    async def scenario():
        stale = asyncio.ensure_future(cache.get_snapshot())
        await asyncio.sleep(0.01)
        cache.invalidate()
        backend.materials.append(material("m4", current=1, minimum=0))
        backend.delay.pop("query_materials")
        fresh = await cache.get_snapshot()
        old = await stale
        return old, fresh

    old, fresh = asyncio.run(scenario())
    assert len(fresh.materials) == 4
    assert cache.snapshot is fresh
    assert old is not fresh


def test_degraded_slices(cache, backend):
    backend.fail["query_movements"] = BackendError("movements table missing")
    backend.fail["query_stats"] = BackendError("stats view missing")
    snap = asyncio.run(cache.get_snapshot())
    assert len(snap.materials) == 3
    assert snap.movements == ()
    assert snap.stats.total_materials == 0
    assert cache.last_error is None


def test_materials_failure_fails_the_read(cache, backend):
    backend.fail["query_materials"] = BackendError("materials: permission denied")
    with pytest.raises(BackendError):
        asyncio.run(cache.get_snapshot())
    assert cache.snapshot is None
    assert cache.last_error == "materials: permission denied"


def test_failed_fetch_from_before_clear_leaves_no_error(cache, backend):
    backend.delay["query_materials"] = 0.03
    backend.fail["query_materials"] = BackendError("materials: permission denied")

    async def scenario():
        stale = asyncio.ensure_future(cache.get_snapshot())
        await asyncio.sleep(0.01)
        cache.clear()
        with pytest.raises(BackendError):
            await stale

    asyncio.run(scenario())
    assert cache.snapshot is None
    assert cache.last_error is None


def test_slow_materials_times_out(backend, webhook):
    cache = InventoryCache(backend, webhook, materials_timeout=0.01)
    backend.delay["query_materials"] = 0.5
    with pytest.raises(SessionTimeoutError, match="Materials fetch timed out"):
        asyncio.run(cache.get_snapshot())


def test_search(cache, backend):
    assert asyncio.run(cache.search_materials("   ")) == []
    assert backend.calls["search_materials"] == 0

    hits = asyncio.run(cache.search_materials("drawer"))
    assert [m.id for m in hits] == ["m3"]


def test_search_failure_returns_empty_with_error(cache, backend):
    backend.fail["search_materials"] = BackendError("search unavailable")
    assert asyncio.run(cache.search_materials("cable")) == []
    assert cache.last_error == "search unavailable"


def test_lookups(cache):
    assert asyncio.run(cache.list_categories()) == ["Cables", "Electrical"]
    assert asyncio.run(cache.list_locations()) == ["Drawer 3", "Shelf A"]


def test_clear_forgets_snapshot_and_error(cache, backend):
    async def scenario():
        await cache.get_snapshot()
        cache.last_error = "old"
        cache.clear()

    asyncio.run(scenario())
    assert cache.snapshot is None
    assert cache.last_error is None


# ---------------------------
# Mutators
# ---------------------------

def test_update_stock_refreshes_before_returning(cache, signed_in, webhook):
    signed_in("tecnico")

    async def scenario():
        before = await cache.get_snapshot()
        await cache.update_stock("m1", 5, "restock from supplier")
        return before, cache.snapshot

    before, after = asyncio.run(scenario())
    assert _stock(before, "m1") == 3
    assert _stock(after, "m1") == 8
    assert after.movements[0].quantity == 5
    action, (material_id, qty, comment), actor = webhook.sent[0]
    assert (action, material_id, qty, comment) == ("IncreaseStock", "m1", 5.0, "restock from supplier")
    assert actor.email == "tech@example.com"


def test_negative_change_sends_decrease_with_absolute_quantity(cache, signed_in, webhook):
    signed_in("tecnico")
    asyncio.run(cache.update_stock("m3", -4, "used on site"))
    action, (_mid, qty, _c), _actor = webhook.sent[0]
    assert action == "DecreaseStock"
    assert qty == 4.0
    assert _stock(cache.snapshot, "m3") == 36


@pytest.mark.parametrize(
    "material_id,change,comment,message",
    [
        ("m1", 0, "x", "cannot be zero"),
        ("", 2, "x", "Select a material"),
        ("m1", 2, "   ", "comment is required"),
        ("m1", float("nan"), "x", "finite number"),
        ("m1", float("inf"), "x", "finite number"),
        ("m1", float("-inf"), "x", "finite number"),
        ("m1", "lots", "x", "finite number"),
    ],
)
def test_update_stock_validation_never_hits_network(cache, backend, webhook, material_id, change, comment, message):
    with pytest.raises(ValidationError, match=message):
        asyncio.run(cache.update_stock(material_id, change, comment))
    assert webhook.sent == []
    assert backend.calls["get_session"] == 0


def test_mutation_requires_session(cache, webhook):
    with pytest.raises(AuthenticationError):
        asyncio.run(cache.update_stock("m1", 1, "x"))
    assert webhook.sent == []


def test_webhook_failure_keeps_snapshot(cache, signed_in, webhook):
    signed_in("tecnico")
    webhook.fail = MutationError("Workflow rejected the request")

    async def scenario():
        snap = await cache.get_snapshot()
        with pytest.raises(MutationError):
            await cache.update_stock("m1", 1, "x")
        return snap

    snap = asyncio.run(scenario())
    assert cache.snapshot is snap


def test_refresh_failure_after_write_is_reported_not_raised(cache, signed_in, backend):
    signed_in("tecnico")

    async def scenario():
        await cache.get_snapshot()
        backend.fail["query_materials"] = BackendError("read replica down")
        await cache.update_stock("m1", 1, "x")

    asyncio.run(scenario())
    assert cache.snapshot is None
    assert cache.last_error == "read replica down"


def test_create_material_generates_code(cache, signed_in, webhook):
    signed_in("admin")
    ref = asyncio.run(cache.create_material(NewMaterial(code="", name=" Relay 24V ", quantity=6, min_stock=1)))
    assert ref.code.startswith("MAT_")
    assert len(ref.code) == len("MAT_") + 6
    sent = webhook.sent[0][1]
    assert sent.name == "Relay 24V"
    assert any(m.code == ref.code for m in cache.snapshot.materials)


def test_create_material_validates_before_sending(cache, signed_in, webhook):
    signed_in("admin")
    with pytest.raises(ValidationError, match="Name is required"):
        asyncio.run(cache.create_material(NewMaterial(code="MAT_1", name="  ")))
    with pytest.raises(ValidationError, match="cannot be negative"):
        asyncio.run(cache.create_material(NewMaterial(code="MAT_1", name="Relay", quantity=-1)))
    assert webhook.sent == []


def test_update_material_writes_and_refreshes(cache, signed_in, backend, webhook):
    signed_in("admin", user_id="u-admin")
    edit = MaterialEdit(name=" Copper cable 2.5mm ", category="Cables", location="Shelf B", min_stock="8", unit="m")

    async def scenario():
        await cache.get_snapshot()
        await cache.update_material("m1", edit)
        return cache.snapshot

    after = asyncio.run(scenario())
    m1 = next(m for m in after.materials if m.id == "m1")
    assert m1.name == "Copper cable 2.5mm"
    assert m1.location == "Shelf B"
    assert m1.min_stock == 8.0
    assert m1.unit == "m"
    assert m1.current_stock == 3
    assert backend.edited_by == {"m1": "u-admin"}
    assert backend.calls["query_materials"] == 2
    assert webhook.sent == []


@pytest.mark.parametrize(
    "material_id,edit,message",
    [
        ("", MaterialEdit(name="Cable"), "Select a material"),
        ("m1", MaterialEdit(name="  "), "Name is required"),
        ("m1", MaterialEdit(name="Cable", min_stock=-1), "Minimum stock cannot be negative"),
        ("m1", MaterialEdit(name="Cable", unit_price=float("inf")), "Unit price must be a finite number"),
    ],
)
def test_update_material_validation_never_hits_network(cache, signed_in, backend, material_id, edit, message):
    signed_in("admin")
    with pytest.raises(ValidationError, match=message):
        asyncio.run(cache.update_material(material_id, edit))
    assert backend.calls["get_session"] == 0
    assert backend.calls["update_material"] == 0


def test_update_material_of_missing_row_fails(cache, signed_in):
    signed_in("admin")
    with pytest.raises(BackendError, match="not updated"):
        asyncio.run(cache.update_material("gone", MaterialEdit(name="Cable")))


# ---------------------------
# Consumers
# ---------------------------

def test_consumer_load_publishes_loading_then_data(cache):
    consumer = cache.consumer()
    states = []
    consumer.watch(states.append)
    state = asyncio.run(consumer.load())
    assert [s.loading for s in states] == [True, False]
    assert len(state.materials) == 3
    assert state.error is None


def test_consumer_load_error_lands_in_state(cache, backend):
    backend.fail["query_materials"] = BackendError("offline")
    consumer = cache.consumer()
    state = asyncio.run(consumer.load())
    assert state.loading is False
    assert state.error == "offline"


def test_consumer_keeps_materials_when_refresh_after_write_fails(cache, signed_in, backend):
    signed_in("tecnico")
    consumer = cache.consumer()

    async def scenario():
        await consumer.load()
        backend.fail["query_materials"] = BackendError("read replica down")
        await consumer.update_stock("m1", 2, "x")

    asyncio.run(scenario())
    assert len(consumer.state.materials) == 3
    assert consumer.state.error == "read replica down"


def test_consumer_write_error_is_published_and_raised(cache, signed_in, webhook):
    signed_in("tecnico")
    webhook.fail = MutationError("HTTP 502")
    consumer = cache.consumer()
    with pytest.raises(MutationError):
        asyncio.run(consumer.update_stock("m1", 1, "x"))
    assert consumer.state.error == "HTTP 502"


def test_closed_consumer_goes_quiet_but_cache_survives(cache, backend):
    first, second = cache.consumer(), cache.consumer()
    seen = []
    first.watch(seen.append)
    first.close()

    async def scenario():
        await first.load()
        return await second.load()

    state = asyncio.run(scenario())
    assert seen == []
    assert first.closed is True
    assert len(state.materials) == 3
    assert backend.calls["query_materials"] == 1


def test_consumer_edit_error_is_published_and_raised(cache, signed_in, backend):
    signed_in("admin")
    backend.fail["update_material"] = BackendError("permission denied for table inventory_items")
    consumer = cache.consumer()

    async def scenario():
        await consumer.load()
        with pytest.raises(BackendError):
            await consumer.update_material("m1", MaterialEdit(name="Cable"))

    asyncio.run(scenario())
    assert consumer.state.error == "permission denied for table inventory_items"
    assert len(consumer.state.materials) == 3
