import re

import pytest

import pricing
from pricing import final_unit_price, generate_order_id, resolve_order_pricing
from schemas import Order, OrderItem


@pytest.fixture
def product_ids(store):
    col = store.collection("product")
    discounted = col.insert_one({"sku": "LAMP-1", "price": 100.0, "discount": 10}).inserted_id
    full_price = col.insert_one({"sku": "CHAIR-1", "price": 50.0, "discount": 0}).inserted_id
    return str(discounted), str(full_price)


def test_final_unit_price():
    assert final_unit_price(100, 10) == 90
    assert final_unit_price(50, 0) == 50
    assert final_unit_price(80, 100) == 0


def test_total_is_computed_from_discounted_prices(store, product_ids):
    lamp, chair = product_ids
    order = Order(items=[OrderItem(product_id=lamp, quantity=2), OrderItem(product_id=chair, quantity=1)])
    missing = resolve_order_pricing(store, order)
    assert missing == []
    assert order.total_price == 230
    assert [i.price for i in order.items] == [90, 50]


def test_prices_are_snapshots(store, product_ids):
    lamp, _ = product_ids
    order = Order(items=[OrderItem(product_id=lamp, quantity=1)])
    resolve_order_pricing(store, order)
    store.collection("product").update_one({"sku": "LAMP-1"}, {"$set": {"price": 500.0}})
    assert order.items[0].price == 90


def test_missing_products_are_skipped_and_reported(store, product_ids):
    lamp, _ = product_ids
    ghost = "0123456789abcdef01234567"
    order = Order(items=[
        OrderItem(product_id=lamp, quantity=1),
        OrderItem(product_id=ghost, quantity=3, price=12),
        OrderItem(product_id="garbage", quantity=1),
    ])
    missing = resolve_order_pricing(store, order)
    assert missing == [ghost, "garbage"]
    assert order.total_price == 90
    assert order.items[1].price == 12


def test_positive_total_is_left_alone(store, product_ids):
    lamp, _ = product_ids
    order = Order(items=[OrderItem(product_id=lamp, quantity=2, price=1)], total_price=2)
    resolve_order_pricing(store, order)
    assert order.total_price == 2
    assert order.items[0].price == 1


def test_zero_total_is_recomputed(store, product_ids):
    lamp, chair = product_ids
    order = Order(items=[OrderItem(product_id=lamp, quantity=2, price=0), OrderItem(product_id=chair, quantity=1, price=0)], total_price=0)
    resolve_order_pricing(store, order)
    assert order.total_price == 230
    assert [i.price for i in order.items] == [90, 50]


def test_order_id_is_generated_when_missing(store):
    order = Order()
    resolve_order_pricing(store, order)
    assert re.match(r"^ORD-\d+-\d{1,3}$", order.order_id)
    assert order.total_price == 0

    order = Order(order_id="ORD-CUSTOM")
    resolve_order_pricing(store, order)
    assert order.order_id == "ORD-CUSTOM"


def test_ids_in_same_millisecond_differ_by_suffix(monkeypatch):
    suffixes = iter([17, 842])
    monkeypatch.setattr(pricing.time, "time", lambda: 1700000000.123)
    monkeypatch.setattr(pricing.random, "randrange", lambda n: next(suffixes))
    first, second = generate_order_id(), generate_order_id()
    assert first == "ORD-1700000000123-17"
    assert second == "ORD-1700000000123-842"
