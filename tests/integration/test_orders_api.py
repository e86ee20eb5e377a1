"""Integration tests for market order endpoints."""

import uuid
from datetime import timedelta
from decimal import Decimal

import pytest
from libs.auth.models import Role
from libs.auth.tokens import create_access_token
from tests.factories import auth_headers, make_auth_user, seed_customer, seed_store


async def _place(client, customer, product_id, quantity):
    return await client.post(
        "/orders",
        json={"items": [{"product_id": str(product_id), "quantity": quantity}]},
        headers=auth_headers(customer),
    )


async def _stock(client, product_id):
    response = await client.get(f"/products/{product_id}")
    assert response.status_code == 200, response.text
    return response.json()["quantity"]


# ---------------------------------------------------------------------------
# Placement
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_create_order(market_client, db_session):
    """POST /orders - 5 apples at 2.00 totals 10.00 and leaves 5 on hand."""
    _, store, (apples,) = await seed_store(
        db_session, products=[{"quantity": 10, "price": Decimal("2.00")}]
    )
    customer = await seed_customer(db_session)

    response = await _place(market_client, customer, apples.id, 5)

    assert response.status_code == 201, response.text
    data = response.json()
    assert data["status"] == "pending"
    assert data["customer_id"] == str(customer.user_id)
    assert Decimal(data["total_amount"]) == Decimal("10.00")
    assert len(data["items"]) == 1
    item = data["items"][0]
    assert item["product_id"] == str(apples.id)
    assert item["store_id"] == str(store.id)
    assert item["quantity"] == 5
    assert Decimal(item["price"]) == Decimal("2.00")
    assert await _stock(market_client, apples.id) == 5


@pytest.mark.asyncio
@pytest.mark.integration
async def test_create_order_insufficient_stock(market_client, db_session):
    _, _, (apples,) = await seed_store(db_session, products=[{"quantity": 10}])
    customer = await seed_customer(db_session)

    response = await _place(market_client, customer, apples.id, 11)

    assert response.status_code == 400
    assert "available: 10" in response.json()["detail"]
    assert await _stock(market_client, apples.id) == 10


@pytest.mark.asyncio
@pytest.mark.integration
async def test_create_order_unknown_product(market_client, db_session):
    customer = await seed_customer(db_session)

    response = await _place(market_client, customer, uuid.uuid4(), 1)

    assert response.status_code == 404


@pytest.mark.asyncio
@pytest.mark.integration
async def test_create_order_empty_items(market_client, db_session):
    customer = await seed_customer(db_session)

    response = await market_client.post(
        "/orders", json={"items": []}, headers=auth_headers(customer)
    )

    assert response.status_code == 400


@pytest.mark.asyncio
@pytest.mark.integration
async def test_create_order_rejects_zero_quantity(market_client, db_session):
    customer = await seed_customer(db_session)

    response = await _place(market_client, customer, uuid.uuid4(), 0)

    assert response.status_code == 422


@pytest.mark.asyncio
@pytest.mark.integration
async def test_create_order_requires_token(market_client):
    response = await market_client.post("/orders", json={"items": []})

    assert response.status_code == 401
    assert response.json()["detail"] == "Authorization token not provided"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_create_order_rejects_bad_tokens(market_client):
    expired = create_access_token(
        uuid.uuid4(), Role.CUSTOMER, expires_delta=timedelta(minutes=-5)
    )
    for token in ("not-a-jwt", expired):
        response = await market_client.post(
            "/orders",
            json={"items": []},
            headers={"Authorization": f"Bearer {token}"},
        )
        assert response.status_code == 401
        assert response.json()["detail"] == "Could not validate credentials"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_farmer_cannot_create_order(market_client, db_session):
    farmer, _, (apples,) = await seed_store(db_session, products=[{}])

    response = await _place(market_client, farmer, apples.id, 1)

    assert response.status_code == 403
    assert await _stock(market_client, apples.id) == 10


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_order_statuses(market_client, db_session):
    customer = await seed_customer(db_session)

    response = await market_client.get(
        "/orders/statuses", headers=auth_headers(customer)
    )

    assert response.status_code == 200
    assert response.json()["statuses"] == [
        "pending",
        "processing",
        "delivered",
        "completed",
        "cancelled",
    ]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_list_orders_paginates_and_filters(market_client, db_session):
    _, _, (apples,) = await seed_store(db_session, products=[{"quantity": 10}])
    customer = await seed_customer(db_session)
    for _ in range(3):
        assert (await _place(market_client, customer, apples.id, 1)).status_code == 201

    response = await market_client.get(
        "/orders", params={"limit": 2}, headers=auth_headers(customer)
    )
    assert response.status_code == 200
    data = response.json()
    assert len(data["orders"]) == 2
    assert data["pagination"] == {"page": 1, "limit": 2, "total": 3, "pages": 2}

    response = await market_client.get(
        "/orders", params={"status": "cancelled"}, headers=auth_headers(customer)
    )
    assert response.json()["pagination"]["total"] == 0


@pytest.mark.asyncio
@pytest.mark.integration
async def test_list_orders_rejects_unknown_status(market_client, db_session):
    customer = await seed_customer(db_session)

    response = await market_client.get(
        "/orders", params={"status": "shipped"}, headers=auth_headers(customer)
    )

    assert response.status_code == 422


@pytest.mark.asyncio
@pytest.mark.integration
async def test_get_order_visibility(market_client, db_session):
    farmer, _, (apples,) = await seed_store(db_session, products=[{}])
    other_farmer, _, _ = await seed_store(db_session)
    customer = await seed_customer(db_session)
    stranger = await seed_customer(db_session)
    order_id = (await _place(market_client, customer, apples.id, 1)).json()["id"]

    for user, expected in (
        (customer, 200),
        (farmer, 200),
        (make_auth_user(Role.ADMIN), 200),
        (stranger, 403),
        (other_farmer, 403),
    ):
        response = await market_client.get(
            f"/orders/{order_id}", headers=auth_headers(user)
        )
        assert response.status_code == expected, user.role

    response = await market_client.get(
        f"/orders/{uuid.uuid4()}", headers=auth_headers(customer)
    )
    assert response.status_code == 404


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_farmer_updates_status(market_client, db_session):
    farmer, _, (apples,) = await seed_store(db_session, products=[{}])
    customer = await seed_customer(db_session)
    order_id = (await _place(market_client, customer, apples.id, 1)).json()["id"]

    response = await market_client.put(
        f"/orders/{order_id}",
        json={"status": "processing"},
        headers=auth_headers(farmer),
    )
    assert response.status_code == 200, response.text
    assert response.json()["status"] == "processing"

    response = await market_client.put(
        f"/orders/{order_id}",
        json={"status": "pending"},
        headers=auth_headers(farmer),
    )
    assert response.status_code == 400
    assert "Invalid status transition" in response.json()["detail"]

    response = await market_client.put(
        f"/orders/{order_id}",
        json={"status": "shipped"},
        headers=auth_headers(farmer),
    )
    assert response.status_code == 422


@pytest.mark.asyncio
@pytest.mark.integration
async def test_customer_cannot_advance_status(market_client, db_session):
    _, _, (apples,) = await seed_store(db_session, products=[{}])
    customer = await seed_customer(db_session)
    order_id = (await _place(market_client, customer, apples.id, 1)).json()["id"]

    response = await market_client.put(
        f"/orders/{order_id}",
        json={"status": "processing"},
        headers=auth_headers(customer),
    )

    assert response.status_code == 403


@pytest.mark.asyncio
@pytest.mark.integration
async def test_cancel_order_restores_stock(market_client, db_session):
    _, _, (apples,) = await seed_store(db_session, products=[{"quantity": 10}])
    customer = await seed_customer(db_session)
    order_id = (await _place(market_client, customer, apples.id, 4)).json()["id"]
    assert await _stock(market_client, apples.id) == 6

    response = await market_client.post(
        f"/orders/{order_id}/cancel", headers=auth_headers(customer)
    )
    assert response.status_code == 200, response.text
    data = response.json()
    assert data["status"] == "cancelled"
    assert data["cancelled_at"] is not None
    assert await _stock(market_client, apples.id) == 10

    # Cancelling again changes nothing
    response = await market_client.post(
        f"/orders/{order_id}/cancel", headers=auth_headers(customer)
    )
    assert response.status_code == 200
    assert await _stock(market_client, apples.id) == 10


# ---------------------------------------------------------------------------
# Observability
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_request_id_is_echoed(market_client):
    response = await market_client.get(
        "/health", headers={"X-Request-ID": "req-123"}
    )

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "service": "market"}
    assert response.headers["X-Request-ID"] == "req-123"
