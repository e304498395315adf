"""Integration tests for checkout and customer order endpoints."""

from decimal import Decimal

import pytest
from tests.factories import CouponFactory, OrderFactory, ProductFactory, address_payload


async def _product(db, **overrides):
    product = ProductFactory.create(**overrides)
    db.add(product)
    await db.commit()
    return product


def _checkout_body(product, **overrides):
    body = {
        "items": [{"product_id": str(product.id), "quantity": 1}],
        "email": "buyer@example.com",
        "shipping_address": address_payload(),
        "shipping_method": "standard",
    }
    body.update(overrides)
    return body


@pytest.mark.asyncio
@pytest.mark.integration
async def test_guest_checkout(client, db_session):
    product = await _product(db_session, price=Decimal("30.00"))

    response = await client.post("/store/checkout", json=_checkout_body(product))

    assert response.status_code == 201, response.text
    data = response.json()
    assert data["status"] == "PENDING"
    assert data["payment_status"] == "PENDING"
    assert data["user_id"] is None
    assert Decimal(data["subtotal"]) == Decimal("30.00")
    assert data["history"][0]["notes"] == "Order created"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_checkout_with_coupon(customer_client, db_session, customer):
    product = await _product(db_session, price=Decimal("30.00"))
    db_session.add(CouponFactory.create(code="HALF", value=Decimal("50")))
    await db_session.commit()

    response = await customer_client.post(
        "/store/checkout", json=_checkout_body(product, coupon_code="HALF")
    )

    assert response.status_code == 201, response.text
    data = response.json()
    assert data["user_id"] == str(customer.id)
    assert Decimal(data["discount_amount"]) == Decimal("15.00")


@pytest.mark.asyncio
@pytest.mark.integration
async def test_checkout_validation_errors(client, db_session):
    product = await _product(db_session)

    response = await client.post(
        "/store/checkout",
        json=_checkout_body(product, items=[{"product_id": str(product.id), "quantity": 0}]),
    )

    assert response.status_code == 400
    assert response.json()["code"] == "VALIDATION_ERROR"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_checkout_insufficient_stock(client, db_session):
    product = await _product(db_session, stock=0)

    response = await client.post("/store/checkout", json=_checkout_body(product))

    assert response.status_code == 400
    assert "stock" in response.json()["detail"] or "available" in response.json()["detail"]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_customer_lists_and_fetches_own_orders(customer_client, db_session, customer):
    mine = OrderFactory.create(user_id=customer.id)
    db_session.add_all([mine, OrderFactory.create()])
    await db_session.commit()

    listing = await customer_client.get("/store/orders")
    detail = await customer_client.get(f"/store/orders/{mine.order_number}")

    assert listing.status_code == 200
    assert [o["id"] for o in listing.json()["orders"]] == [str(mine.id)]
    assert detail.status_code == 200
    assert detail.json()["order_number"] == mine.order_number


@pytest.mark.asyncio
@pytest.mark.integration
async def test_customer_cannot_fetch_someone_elses_order(customer_client, db_session):
    theirs = OrderFactory.create()
    db_session.add(theirs)
    await db_session.commit()

    response = await customer_client.get(f"/store/orders/{theirs.order_number}")

    assert response.status_code == 404
