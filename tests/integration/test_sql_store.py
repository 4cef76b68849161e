from decimal import Decimal

import pytest

from orderflow.domain.status import OrderStatus
from orderflow.errors import ConcurrentUpdate, NotFound
from orderflow.schemas import OrderItemIn, ShippingAddress


@pytest.fixture
def shipping(address):
    return ShippingAddress(**address)


def _items(*specs):
    return [OrderItemIn(product_id=p, product_name=p.title(), quantity=q, unit_price=Decimal(u)) for p, q, u in specs]


def test_create_round_trips_items_in_order(sql_store, shipping):
    items = _items(("b", 2, "1.25"), ("a", 1, "10.00"), ("c", 3, "0.10"))

    created = sql_store.create("u1", items, shipping, Decimal("12.80"), {"channel": "web"})
    loaded = sql_store.get(created.id)

    assert [i.product_id for i in loaded.items] == ["b", "a", "c"]
    assert [i.total_price for i in loaded.items] == [Decimal("2.50"), Decimal("10.00"), Decimal("0.30")]
    assert loaded.total_amount == Decimal("12.80")
    assert loaded.metadata == {"channel": "web"}
    assert loaded.shipping_address == shipping
    assert loaded.status == OrderStatus.PENDING
    assert loaded.version == 1


def test_get_missing_returns_none(sql_store):
    assert sql_store.get("missing") is None


def test_find_by_user_counts_all_pages(sql_store, shipping):
    for _ in range(3):
        sql_store.create("u1", _items(("a", 1, "1")), shipping, Decimal("1"))
    sql_store.create("u2", _items(("a", 1, "1")), shipping, Decimal("1"))

    orders, total = sql_store.find_by_user("u1", page=2, limit=2)

    assert total == 3
    assert len(orders) == 1
    assert sql_store.find_by_user("nobody", 1, 10) == ([], 0)


def test_update_status_bumps_version(sql_store, shipping):
    order = sql_store.create("u1", _items(("a", 1, "1")), shipping, Decimal("1"))

    updated = sql_store.update_status(order.id, expected_version=1, status=OrderStatus.CONFIRMED)

    assert updated.status == OrderStatus.CONFIRMED
    assert updated.version == 2
    assert updated.cancelled_at is None


def test_update_status_ignores_cancel_fields_unless_cancelling(sql_store, shipping):
    order = sql_store.create("u1", _items(("a", 1, "1")), shipping, Decimal("1"))

    updated = sql_store.update_status(order.id, 1, OrderStatus.CONFIRMED, cancel_reason="stray")

    assert updated.cancel_reason is None


def test_update_status_with_stale_version(sql_store, shipping):
    order = sql_store.create("u1", _items(("a", 1, "1")), shipping, Decimal("1"))
    sql_store.update_status(order.id, 1, OrderStatus.CONFIRMED)

    with pytest.raises(ConcurrentUpdate):
        sql_store.update_status(order.id, 1, OrderStatus.CANCELLED, cancel_reason="late")

    assert sql_store.get(order.id).status == OrderStatus.CONFIRMED


def test_update_status_unknown_order(sql_store):
    with pytest.raises(NotFound):
        sql_store.update_status("missing", 1, OrderStatus.CONFIRMED)


def test_stats_empty(sql_store):
    assert sql_store.stats_by_status() == []
