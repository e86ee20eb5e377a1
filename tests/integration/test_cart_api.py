"""Integration tests for market cart endpoints."""

import uuid
from decimal import Decimal

import pytest
from libs.auth.models import Role
from services.market_service.services.cart_lines import LocalCart
from tests.factories import auth_headers, make_auth_user, seed_customer, seed_store


@pytest.mark.asyncio
@pytest.mark.integration
async def test_cart_starts_empty(market_client, db_session):
    customer = await seed_customer(db_session)

    response = await market_client.get("/cart", headers=auth_headers(customer))

    assert response.status_code == 200
    assert response.json()["items"] == []
    assert response.json()["total_quantity"] == 0


@pytest.mark.asyncio
@pytest.mark.integration
async def test_add_remove_and_clear(market_client, db_session):
    _, _, (apples, pears) = await seed_store(
        db_session,
        products=[
            {"name": "Apples", "price": Decimal("2.00")},
            {"name": "Pears", "price": Decimal("3.00")},
        ],
    )
    customer = await seed_customer(db_session)
    headers = auth_headers(customer)

    await market_client.post(
        "/cart", json={"product_id": str(apples.id), "quantity": 2}, headers=headers
    )
    response = await market_client.post(
        "/cart", json={"product_id": str(pears.id)}, headers=headers
    )
    assert response.status_code == 200, response.text
    data = response.json()
    assert data["total_quantity"] == 3
    assert Decimal(data["subtotal"]) == Decimal("7.00")

    response = await market_client.delete(f"/cart/{apples.id}", headers=headers)
    assert response.status_code == 200
    assert [i["product_id"] for i in response.json()["items"]] == [str(pears.id)]

    response = await market_client.delete(f"/cart/{apples.id}", headers=headers)
    assert response.status_code == 404

    response = await market_client.delete("/cart", headers=headers)
    assert response.status_code == 200
    assert response.json()["items"] == []


@pytest.mark.asyncio
@pytest.mark.integration
async def test_add_unknown_product(market_client, db_session):
    customer = await seed_customer(db_session)

    response = await market_client.post(
        "/cart",
        json={"product_id": str(uuid.uuid4()), "quantity": 1},
        headers=auth_headers(customer),
    )

    assert response.status_code == 404


@pytest.mark.asyncio
@pytest.mark.integration
async def test_merge_local_cart(market_client, db_session):
    """POST /cart/merge - a signed-out cart is folded in at login."""
    _, _, (apples, pears) = await seed_store(
        db_session, products=[{"name": "Apples"}, {"name": "Pears"}]
    )
    customer = await seed_customer(db_session)
    headers = auth_headers(customer)
    await market_client.post(
        "/cart", json={"product_id": str(apples.id), "quantity": 1}, headers=headers
    )

    local = LocalCart()
    local.add_item(apples.id, 2)
    local.add_item(pears.id, 1)
    local.add_item(uuid.uuid4(), 4)

    response = await market_client.post(
        "/cart/merge", json={"items": local.to_payload()}, headers=headers
    )

    assert response.status_code == 200, response.text
    quantities = {i["product_id"]: i["quantity"] for i in response.json()["items"]}
    assert quantities == {str(apples.id): 3, str(pears.id): 1}


@pytest.mark.asyncio
@pytest.mark.integration
async def test_checkout(market_client, db_session):
    _, _, (apples,) = await seed_store(
        db_session, products=[{"quantity": 10, "price": Decimal("2.00")}]
    )
    customer = await seed_customer(db_session)
    headers = auth_headers(customer)
    await market_client.post(
        "/cart", json={"product_id": str(apples.id), "quantity": 5}, headers=headers
    )

    response = await market_client.post("/cart/checkout", headers=headers)

    assert response.status_code == 201, response.text
    assert Decimal(response.json()["total_amount"]) == Decimal("10.00")
    assert (await market_client.get("/cart", headers=headers)).json()["items"] == []
    product = (await market_client.get(f"/products/{apples.id}")).json()
    assert product["quantity"] == 5


@pytest.mark.asyncio
@pytest.mark.integration
async def test_checkout_over_stock_keeps_cart(market_client, db_session):
    _, _, (apples,) = await seed_store(db_session, products=[{"quantity": 1}])
    customer = await seed_customer(db_session)
    headers = auth_headers(customer)
    await market_client.post(
        "/cart", json={"product_id": str(apples.id), "quantity": 3}, headers=headers
    )

    response = await market_client.post("/cart/checkout", headers=headers)

    assert response.status_code == 400
    assert "available: 1" in response.json()["detail"]
    cart = (await market_client.get("/cart", headers=headers)).json()
    assert cart["total_quantity"] == 3


@pytest.mark.asyncio
@pytest.mark.integration
async def test_checkout_empty_cart(market_client, db_session):
    customer = await seed_customer(db_session)

    response = await market_client.post(
        "/cart/checkout", headers=auth_headers(customer)
    )

    assert response.status_code == 400


@pytest.mark.asyncio
@pytest.mark.integration
async def test_cart_is_for_customers_only(market_client):
    response = await market_client.get(
        "/cart", headers=auth_headers(make_auth_user(Role.FARMER))
    )
    assert response.status_code == 403

    response = await market_client.get("/cart")
    assert response.status_code == 401
