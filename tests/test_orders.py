from datetime import datetime
from decimal import Decimal

import pytest
from sqlalchemy import select, func

from storefront import crud
from storefront.errors import InsufficientStock
from storefront.models import Order, OrderStatus, Product
from storefront.services.order_service import OrderService, can_transition, months_ago, merge_lines

from conftest import bearer, login, register_verified

SHIPPING = {
    "firstName": "Ada",
    "lastName": "Lovelace",
    "address": "12 Analytical St",
    "city": "London",
    "postalCode": "N1 9GU",
    "phone": "555-0100",
}


async def make_product(session_factory, **values):
    data = {"name": "Studio Pro", "price": Decimal("100.00"), "stock_count": 10}
    data.update(values)
    async with session_factory() as session:
        return await crud.create_product(session, data)


async def stock_of(session_factory, product_id):
    async with session_factory() as session:
        r = await session.execute(select(Product.stock_count).where(Product.id == product_id))
        return r.scalar_one()


async def order_count(session_factory):
    async with session_factory() as session:
        r = await session.execute(select(func.count()).select_from(Order))
        return r.scalar_one()


async def place(client, token, lines):
    body = dict(SHIPPING, items=[{"productId": pid, "quantity": qty} for pid, qty in lines])
    return await client.post("/api/order/create", json=body, headers=bearer(token))


async def test_checkout_scenario(client, session_factory, admin_token, user_token):
    r = await client.post("/api/categories/create", json={"name": "Headphones"}, headers=bearer(admin_token))
    category_id = r.json()["category"]["id"]
    product = await make_product(session_factory, category_id=category_id, discounted_price=Decimal("80.00"))

    r = await client.post("/api/cart/add", json={"productId": product.id, "quantity": 3}, headers=bearer(user_token))
    assert r.status_code == 200

    r = await place(client, user_token, [(product.id, 3)])
    assert r.status_code == 200, r.text
    order = r.json()["order"]
    assert order["status"] == OrderStatus.PENDING
    assert order["total"] == 240.0
    assert order["firstName"] == "Ada"
    assert order["postalCode"] == "N1 9GU"
    assert [(i["productId"], i["quantity"], i["price"]) for i in order["items"]] == [(product.id, 3, 80.0)]

    assert await stock_of(session_factory, product.id) == 7


async def test_order_over_stock_changes_nothing(client, session_factory, user_token):
    product = await make_product(session_factory, stock_count=2)
    other = await make_product(session_factory, name="Cable", stock_count=5)

    r = await place(client, user_token, [(other.id, 1), (product.id, 3)])
    assert r.status_code == 400
    assert "Insufficient stock" in r.json()["error"]

    assert await order_count(session_factory) == 0
    assert await stock_of(session_factory, product.id) == 2
    assert await stock_of(session_factory, other.id) == 5


async def test_order_validation(client, session_factory, user_token):
    r = await place(client, user_token, [])
    assert r.status_code == 400
    r = await place(client, user_token, [("missing", 1)])
    assert r.status_code == 404

    product = await make_product(session_factory)
    r = await place(client, user_token, [(product.id, 0)])
    assert r.status_code == 400
    assert await order_count(session_factory) == 0


async def test_duplicate_lines_are_merged(client, session_factory, user_token):
    product = await make_product(session_factory, stock_count=5)
    r = await place(client, user_token, [(product.id, 2), (product.id, 3)])
    assert r.status_code == 200
    items = r.json()["order"]["items"]
    assert [(i["productId"], i["quantity"]) for i in items] == [(product.id, 5)]
    assert r.json()["order"]["total"] == 500.0
    assert await stock_of(session_factory, product.id) == 0


async def test_lost_stock_race_rolls_back_whole_order(session_factory, db):
    buyer = await crud.create_user(db, name="B", email="b@example.com", password_hash="x", is_verified=True)
    plenty = await crud.create_product(db, {"name": "Plenty", "price": Decimal("1"), "stock_count": 10})
    scarce = await crud.create_product(db, {"name": "Scarce", "price": Decimal("1"), "stock_count": 10})
    # rollback expires both instances
    buyer_id = buyer.id
    plenty_id, scarce_id = plenty.id, scarce.id

    # another session sells most of the scarce stock; ``db`` still sees 10
    async with session_factory() as other:
        assert await crud.decrement_stock(other, scarce_id, 9)
        await other.commit()

    with pytest.raises(InsufficientStock):
        await OrderService(db).create_order(buyer_id, [(plenty_id, 2), (scarce_id, 3)], {})

    assert await order_count(session_factory) == 0
    assert await stock_of(session_factory, plenty_id) == 10
    assert await stock_of(session_factory, scarce_id) == 1


async def test_decrement_stock_is_conditional(session_factory, db):
    product = await make_product(session_factory, stock_count=3)
    assert await crud.decrement_stock(db, product.id, 4) is False
    assert await crud.decrement_stock(db, product.id, 3) is True
    await db.commit()
    assert await stock_of(session_factory, product.id) == 0


async def test_cancel_restores_stock_once(client, session_factory, user_token):
    product = await make_product(session_factory)
    order_id = (await place(client, user_token, [(product.id, 4)])).json()["order"]["id"]
    assert await stock_of(session_factory, product.id) == 6

    r = await client.put(f"/api/order/{order_id}/cancel", headers=bearer(user_token))
    assert r.status_code == 200
    assert await stock_of(session_factory, product.id) == 10

    r = await client.put(f"/api/order/{order_id}/cancel", headers=bearer(user_token))
    assert r.status_code == 400
    assert await stock_of(session_factory, product.id) == 10


async def test_cancel_is_owner_or_admin(client, mailer, session_factory, user_token, admin_token):
    product = await make_product(session_factory)
    order_id = (await place(client, user_token, [(product.id, 1)])).json()["order"]["id"]

    await register_verified(client, mailer, "stranger@example.com")
    stranger = (await login(client, "stranger@example.com"))["token"]
    r = await client.put(f"/api/order/{order_id}/cancel", headers=bearer(stranger))
    assert r.status_code == 403

    r = await client.put(f"/api/order/{order_id}/cancel", headers=bearer(admin_token))
    assert r.status_code == 200

    r = await client.put("/api/order/missing/cancel", headers=bearer(admin_token))
    assert r.status_code == 404


async def test_status_transitions(client, session_factory, user_token, admin_token):
    product = await make_product(session_factory)
    order_id = (await place(client, user_token, [(product.id, 2)])).json()["order"]["id"]

    async def set_status(status):
        return await client.put(f"/api/order/{order_id}/status", json={"status": status}, headers=bearer(admin_token))

    r = await set_status("LOST")
    assert r.status_code == 400

    r = await set_status("shipped")
    assert r.status_code == 200
    assert r.json()["order"]["status"] == OrderStatus.SHIPPED

    r = await set_status("CANCELLED")
    assert r.status_code == 400
    assert await stock_of(session_factory, product.id) == 8

    r = await set_status("DELIVERED")
    assert r.status_code == 200
    assert r.json()["order"]["status"] == OrderStatus.DELIVERED

    r = await set_status("PENDING")
    assert r.status_code == 400

    r = await client.put(f"/api/order/{order_id}/status", json={"status": "SHIPPED"}, headers=bearer(user_token))
    assert r.status_code == 403


async def test_admin_cancel_through_status_restores_stock(client, session_factory, user_token, admin_token):
    product = await make_product(session_factory)
    order_id = (await place(client, user_token, [(product.id, 5)])).json()["order"]["id"]

    r = await client.put(f"/api/order/{order_id}/status", json={"status": "CANCELLED"}, headers=bearer(admin_token))
    assert r.status_code == 200
    assert r.json()["order"]["status"] == OrderStatus.CANCELLED
    assert await stock_of(session_factory, product.id) == 10


async def test_order_listing_is_admin_only(client, session_factory, user_token, admin_token):
    product = await make_product(session_factory)
    order_id = (await place(client, user_token, [(product.id, 1)])).json()["order"]["id"]

    r = await client.get("/api/order", headers=bearer(user_token))
    assert r.status_code == 403

    r = await client.get("/api/order", headers=bearer(admin_token))
    assert [o["id"] for o in r.json()["orders"]] == [order_id]

    r = await client.get(f"/api/order/{order_id}", headers=bearer(admin_token))
    assert r.json()["order"]["items"][0]["productId"] == product.id

    r = await client.get("/api/order/missing", headers=bearer(admin_token))
    assert r.status_code == 404


async def test_revenue_stats_buckets_delivered_orders(db):
    buyer = await crud.create_user(db, name="B", email="b@example.com", password_hash="x", is_verified=True)
    rows = [
        (datetime(2024, 3, 15), "100", OrderStatus.DELIVERED),
        (datetime(2024, 3, 20), "50", OrderStatus.DELIVERED),
        (datetime(2024, 8, 1), "25.50", OrderStatus.DELIVERED),
        (datetime(2024, 5, 5), "999", OrderStatus.PENDING),
        (datetime(2024, 1, 10), "70", OrderStatus.DELIVERED),
    ]
    for created_at, total, status in rows:
        db.add(Order(user_id=buyer.id, total=Decimal(total), status=status, created_at=created_at))
    await db.commit()

    stats = await OrderService(db).revenue_stats(now=datetime(2024, 8, 31, 12, 0))
    assert stats["data"] == [
        {"name": "Mar", "revenue": 150.0},
        {"name": "Apr", "revenue": 0.0},
        {"name": "May", "revenue": 0.0},
        {"name": "Jun", "revenue": 0.0},
        {"name": "Jul", "revenue": 0.0},
        {"name": "Aug", "revenue": 25.5},
    ]


async def test_revenue_endpoint_shape(client, admin_token):
    r = await client.get("/api/order/stats/revenue", headers=bearer(admin_token))
    assert r.status_code == 200
    data = r.json()["data"]
    assert len(data) == 6
    assert all(m["revenue"] == 0 for m in data)


def test_months_ago_clamps_day():
    assert months_ago(datetime(2024, 8, 31), 6) == datetime(2024, 2, 29)
    assert months_ago(datetime(2025, 3, 15), 6) == datetime(2024, 9, 15)


def test_transition_table():
    assert can_transition(OrderStatus.PENDING, OrderStatus.SHIPPED)
    assert can_transition(OrderStatus.SHIPPED, OrderStatus.DELIVERED)
    assert not can_transition(OrderStatus.SHIPPED, OrderStatus.CANCELLED)
    assert not can_transition(OrderStatus.DELIVERED, OrderStatus.CANCELLED)
    assert not can_transition(OrderStatus.CANCELLED, OrderStatus.PENDING)


def test_merge_lines_keeps_first_seen_order():
    merged = merge_lines([("b", 1), ("a", 2), ("b", 3)])
    assert list(merged.items()) == [("b", 4), ("a", 2)]
