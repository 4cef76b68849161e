"""Tests for cache-aside reads: find_one and find_by_user."""

from datetime import datetime, timedelta, timezone

import pytest

from orderflow.db.models import OrderRow
from orderflow.errors import NotFound, ValidationError
from orderflow.orchestrator import order_cache_key, user_orders_cache_key


def test_miss_loads_from_store_and_populates_cache(orchestrator, make_order, store, cache):
    order = make_order()
    cache.delete(order_cache_key(order.id))

    found = orchestrator.find_one(order.id)

    assert found == order
    assert store.calls["get"] == 1
    assert cache.get(order_cache_key(order.id)) is not None


def test_hit_never_reads_store(orchestrator, make_order, store):
    order = make_order()
    first = orchestrator.find_one(order.id)
    reads = store.calls["get"]

    second = orchestrator.find_one(order.id)

    assert second == first
    assert second.items == first.items
    assert store.calls["get"] == reads


def test_cached_entry_uses_ttl(orchestrator, make_order, store, cache):
    order = make_order()
    orchestrator.find_one(order.id)
    _, expires_at = cache._data[order_cache_key(order.id)]
    assert expires_at - cache._clock() == pytest.approx(300, abs=1)


def test_unknown_id_raises_not_found(orchestrator):
    with pytest.raises(NotFound, match="missing-id"):
        orchestrator.find_one("missing-id")


def test_find_by_user_pages_newest_first(orchestrator, make_order, session_factory):
    created = [make_order(user_id="user-7") for _ in range(5)]
    make_order(user_id="someone-else")
    base = datetime(2026, 1, 1, tzinfo=timezone.utc)
    db = session_factory()
    try:
        for i, o in enumerate(created):
            db.get(OrderRow, o.id).created_at = base + timedelta(minutes=i)
        db.commit()
    finally:
        db.close()

    first = orchestrator.find_by_user("user-7", page=1, limit=2)
    last = orchestrator.find_by_user("user-7", page=3, limit=2)

    assert first.total == 5
    assert [o.id for o in first.orders] == [created[4].id, created[3].id]
    assert [o.id for o in last.orders] == [created[0].id]
    assert all(o.items for o in first.orders)


def test_find_by_user_is_cached_per_page_and_limit(orchestrator, make_order, store, cache):
    make_order(user_id="user-7")

    orchestrator.find_by_user("user-7", 1, 10)
    orchestrator.find_by_user("user-7", 1, 10)
    orchestrator.find_by_user("user-7", 1, 5)

    assert store.calls["find_by_user"] == 2
    assert cache.get(user_orders_cache_key("user-7", 1, 10)) is not None
    assert cache.get(user_orders_cache_key("user-7", 1, 5)) is not None


@pytest.mark.parametrize("page,limit", [(0, 10), (1, 0), (-1, -1)])
def test_find_by_user_rejects_bad_paging(orchestrator, page, limit):
    with pytest.raises(ValidationError):
        orchestrator.find_by_user("user-7", page, limit)
