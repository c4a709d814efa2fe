"""Integration tests for customer order endpoints."""

import uuid
from decimal import Decimal

import pytest
from services.commerce_service.models import Product
from sqlalchemy import select
from tests.conftest import (
    OTHER_CUSTOMER_ID,
    bearer,
    make_customer_user,
    override_auth,
)
from tests.factories import ProductFactory


async def _seed_product(db_session, **overrides) -> Product:
    product = ProductFactory.create(**overrides)
    db_session.add(product)
    await db_session.commit()
    return product


def _order_payload(*lines, **overrides) -> dict:
    payload = {
        "items": [{"product_id": str(pid), "quantity": qty} for pid, qty in lines],
        "shipping_method": "standard",
        "payment_method": "credit_card",
        "shipping_address": {
            "street": "1 Main St",
            "city": "Springfield",
            "state": "IL",
            "zip_code": "62701",
        },
    }
    payload.update(overrides)
    return payload


# ---------------------------------------------------------------------------
# Checkout
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "service": "commerce"}


@pytest.mark.asyncio
@pytest.mark.integration
async def test_place_order(client, db_session, customer_headers):
    """POST /orders: priced, pending, stock taken."""
    product = await _seed_product(db_session, price_current=Decimal("100.00"), stock=5)
    product_id = product.id

    response = await client.post(
        "/orders", json=_order_payload((product_id, 1)), headers=customer_headers
    )

    assert response.status_code == 201, response.text
    data = response.json()
    assert data["status"] == "pending"
    assert data["item_count"] == 1
    assert Decimal(data["subtotal"]) == Decimal("100.00")
    assert Decimal(data["tax"]["amount"]) == Decimal("8.00")
    assert Decimal(data["shipping"]["cost"]) == Decimal("5.99")
    assert Decimal(data["total"]) == Decimal("113.99")
    assert data["shipping"]["address"]["country"] == "United States"
    assert data["payment"]["status"] == "pending"

    stock = await db_session.scalar(select(Product.stock).where(Product.id == product_id))
    assert stock == 4


@pytest.mark.asyncio
@pytest.mark.integration
async def test_place_order_requires_token(client):
    response = await client.post("/orders", json=_order_payload((uuid.uuid4(), 1)))

    assert response.status_code == 401
    assert response.json()["code"] == "UNAUTHORIZED"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_place_order_rejects_bad_token(client):
    response = await client.get(
        "/orders", headers={"Authorization": "Bearer not-a-token"}
    )
    assert response.status_code == 401


@pytest.mark.asyncio
@pytest.mark.integration
async def test_place_order_empty_cart(client, customer_headers):
    response = await client.post(
        "/orders", json=_order_payload(), headers=customer_headers
    )

    assert response.status_code == 400
    assert response.json()["code"] == "INVALID_INPUT"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_place_order_zero_quantity_is_validation_error(client, customer_headers):
    response = await client.post(
        "/orders", json=_order_payload((uuid.uuid4(), 0)), headers=customer_headers
    )

    assert response.status_code == 422
    assert response.json()["code"] == "VALIDATION_ERROR"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_place_order_error_codes(client, db_session, customer_headers):
    scarce = await _seed_product(db_session, stock=1)
    hidden = await _seed_product(db_session, is_active=False)
    scarce_id, hidden_id = scarce.id, hidden.id

    response = await client.post(
        "/orders", json=_order_payload((uuid.uuid4(), 1)), headers=customer_headers
    )
    assert response.status_code == 404
    assert response.json()["code"] == "NOT_FOUND"

    response = await client.post(
        "/orders", json=_order_payload((hidden_id, 1)), headers=customer_headers
    )
    assert response.status_code == 409
    assert response.json()["code"] == "UNAVAILABLE"

    response = await client.post(
        "/orders", json=_order_payload((scarce_id, 2)), headers=customer_headers
    )
    assert response.status_code == 409
    body = response.json()
    assert body["code"] == "INSUFFICIENT_STOCK"
    assert body["details"]["product_id"] == str(scarce_id)


# ---------------------------------------------------------------------------
# History, tracking, cancel
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_order_history_is_per_customer(client, db_session, customer_headers):
    product = await _seed_product(db_session, stock=10)
    product_id = product.id

    created = await client.post(
        "/orders", json=_order_payload((product_id, 1)), headers=customer_headers
    )
    order_id = created.json()["id"]

    response = await client.get("/orders", headers=customer_headers)
    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 1
    assert data["items"][0]["id"] == order_id

    other_headers = bearer(make_customer_user(OTHER_CUSTOMER_ID))
    response = await client.get("/orders", headers=other_headers)
    assert response.json()["total"] == 0

    response = await client.get(f"/orders/{order_id}", headers=other_headers)
    assert response.status_code == 404


@pytest.mark.asyncio
@pytest.mark.integration
async def test_cancel_then_cancel_again(client, db_session, customer_headers):
    product = await _seed_product(db_session, stock=10)
    created = await client.post(
        "/orders", json=_order_payload((product.id, 2)), headers=customer_headers
    )
    order_id = created.json()["id"]

    response = await client.put(
        f"/orders/{order_id}/cancel",
        json={"reason": "Ordered by mistake"},
        headers=customer_headers,
    )
    assert response.status_code == 200, response.text
    assert response.json()["status"] == "cancelled"

    response = await client.put(f"/orders/{order_id}/cancel", headers=customer_headers)
    assert response.status_code == 409
    assert response.json()["code"] == "STATE_CONFLICT"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_tracking_and_invoice(client, db_session, customer_headers):
    product = await _seed_product(db_session, price_current=Decimal("100.00"))
    created = await client.post(
        "/orders", json=_order_payload((product.id, 1)), headers=customer_headers
    )
    order = created.json()

    response = await client.get(f"/orders/{order['id']}/tracking", headers=customer_headers)
    assert response.status_code == 200
    assert response.json()["status"] == "pending"
    assert response.json()["tracking_number"] is None

    response = await client.get(f"/orders/{order['id']}/invoice", headers=customer_headers)
    assert response.status_code == 200
    invoice = response.json()
    assert invoice["order_number"] == order["order_number"]
    assert Decimal(invoice["total"]) == Decimal("113.99")


@pytest.mark.asyncio
@pytest.mark.integration
async def test_reorder(client, db_session, customer_headers):
    product = await _seed_product(db_session, stock=10)
    product_id = product.id
    created = await client.post(
        "/orders",
        json=_order_payload((product_id, 3), shipping_method="overnight"),
        headers=customer_headers,
    )
    original = created.json()

    response = await client.post(
        f"/orders/{original['id']}/reorder", headers=customer_headers
    )

    assert response.status_code == 201, response.text
    data = response.json()
    assert data["id"] != original["id"]
    assert data["items"][0]["quantity"] == 3
    assert data["shipping"]["method"] == "standard"
    assert data["payment"]["method"] == "pending"
    assert data["customer_notes"] == f"Reorder from order {original['order_number']}"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_override_auth_acts_as_user(client, db_session):
    """Routes read the user from the auth dependency, not the token itself."""
    from services.commerce_service.app.main import app

    with override_auth(app, make_customer_user("customer-override")):
        response = await client.get("/orders")

    assert response.status_code == 200
    assert response.json()["total"] == 0
