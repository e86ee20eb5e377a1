"""Integration tests for account endpoints and token-only callers."""

from decimal import Decimal

import pytest
from libs.auth.models import Role
from services.market_service.models import User
from tests.factories import auth_headers, make_auth_user, seed_store

# ---------------------------------------------------------------------------
# Registration and login
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_register_then_login(market_client):
    """POST /users/register - returns a usable token for the new account."""
    response = await market_client.post(
        "/users/register",
        json={
            "email": "Grower@Example.com",
            "password": "s3cret-pass",
            "name": "Ada Grower",
            "role": "farmer",
        },
    )
    assert response.status_code == 201, response.text
    data = response.json()
    assert data["token_type"] == "bearer"
    assert data["user"]["role"] == "farmer"
    assert data["user"]["email"] == "grower@example.com"
    headers = {"Authorization": f"Bearer {data['access_token']}"}

    response = await market_client.get("/users/me", headers=headers)
    assert response.status_code == 200
    assert response.json()["name"] == "Ada Grower"

    response = await market_client.post(
        "/users/login",
        json={"email": "grower@example.com", "password": "s3cret-pass"},
    )
    assert response.status_code == 200, response.text
    assert response.json()["user"]["id"] == data["user"]["id"]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_register_rejects_duplicates_and_admins(market_client):
    payload = {"email": "dup@example.com", "password": "long-enough", "name": "A"}

    response = await market_client.post("/users/register", json=payload)
    assert response.status_code == 201, response.text
    response = await market_client.post("/users/register", json=payload)
    assert response.status_code == 409

    response = await market_client.post(
        "/users/register",
        json={**payload, "email": "boss@example.com", "role": "admin"},
    )
    assert response.status_code == 400

    response = await market_client.post(
        "/users/register",
        json={**payload, "email": "short@example.com", "password": "x"},
    )
    assert response.status_code == 422


@pytest.mark.asyncio
@pytest.mark.integration
async def test_login_failures(market_client):
    await market_client.post(
        "/users/register",
        json={"email": "buyer@example.com", "password": "right-pass", "name": "B"},
    )

    for credentials in (
        {"email": "buyer@example.com", "password": "wrong-pass"},
        {"email": "nobody@example.com", "password": "right-pass"},
    ):
        response = await market_client.post("/users/login", json=credentials)
        assert response.status_code == 401
        assert response.json()["detail"] == "Incorrect email or password"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_update_profile(market_client):
    response = await market_client.post(
        "/users/register",
        json={"email": "edit@example.com", "password": "old-password", "name": "C"},
    )
    headers = {"Authorization": f"Bearer {response.json()['access_token']}"}

    response = await market_client.patch(
        "/users/me",
        json={
            "phone": "555-0100",
            "address": "1 Orchard Lane",
            "password": "new-password",
        },
        headers=headers,
    )
    assert response.status_code == 200, response.text
    assert response.json()["phone"] == "555-0100"
    assert response.json()["address"] == "1 Orchard Lane"

    old = {"email": "edit@example.com", "password": "old-password"}
    new = {"email": "edit@example.com", "password": "new-password"}
    assert (await market_client.post("/users/login", json=old)).status_code == 401
    assert (await market_client.post("/users/login", json=new)).status_code == 200


# ---------------------------------------------------------------------------
# Callers known only by their token
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_token_only_customer_can_order_and_use_cart(market_client, db_session):
    _, _, (apples,) = await seed_store(
        db_session, products=[{"quantity": 10, "price": Decimal("2.00")}]
    )
    customer = make_auth_user(Role.CUSTOMER)
    headers = auth_headers(customer)

    response = await market_client.post(
        "/orders",
        json={"items": [{"product_id": str(apples.id), "quantity": 2}]},
        headers=headers,
    )
    assert response.status_code == 201, response.text
    assert response.json()["customer_id"] == str(customer.user_id)

    other = make_auth_user(Role.CUSTOMER)
    response = await market_client.post(
        "/cart",
        json={"product_id": str(apples.id), "quantity": 1},
        headers=auth_headers(other),
    )
    assert response.status_code == 200, response.text
    assert response.json()["total_quantity"] == 1

    user = await db_session.get(User, customer.user_id)
    assert user is not None
    assert user.role == Role.CUSTOMER
    assert user.email == customer.email
    assert user.password_hash is None


@pytest.mark.asyncio
@pytest.mark.integration
async def test_token_only_farmer_can_open_store(market_client):
    farmer = make_auth_user(Role.FARMER)

    response = await market_client.post(
        "/stores", json={"name": "Late Bloomers"}, headers=auth_headers(farmer)
    )

    assert response.status_code == 201, response.text
    assert response.json()["owner_id"] == str(farmer.user_id)


@pytest.mark.asyncio
@pytest.mark.integration
async def test_me_creates_account_from_token(market_client):
    farmer = make_auth_user(Role.FARMER)
    headers = auth_headers(farmer)

    response = await market_client.get("/users/me", headers=headers)

    assert response.status_code == 200, response.text
    assert response.json()["id"] == str(farmer.user_id)
    assert response.json()["role"] == "farmer"
    assert response.json()["name"] is None
