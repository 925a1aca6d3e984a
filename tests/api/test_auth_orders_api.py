# tests/api/test_auth_orders_api.py
import pytest

from tests.factories import make_product, make_store

pytestmark = pytest.mark.asyncio


async def test_register_login_me(client, session):
    store = await make_store(session)

    r = await client.post(
        "/api/auth/register?store=tienda",
        json={"email": "duena@example.com", "password": "secret123", "name": "Dueña"},
    )
    assert r.status_code == 201, r.text
    assert r.json()["user"]["role"] == "admin"
    assert r.json()["user"]["store_id"] == store.id

    login = await client.post(
        "/api/auth/login?store=tienda", json={"email": "duena@example.com", "password": "secret123"}
    )
    assert login.status_code == 200
    token = login.json()["token"]

    me = await client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 200
    assert me.json()["email"] == "duena@example.com"


async def test_login_with_wrong_password(client, session):
    await make_store(session)
    await client.post(
        "/api/auth/register?store=tienda",
        json={"email": "ana@example.com", "password": "secret123", "name": "Ana"},
    )
    r = await client.post("/api/auth/login?store=tienda", json={"email": "ana@example.com", "password": "nope"})
    assert r.status_code == 401
    assert r.json()["error"]["code"] == "INVALID_CREDENTIALS"


async def test_register_needs_a_store(client):
    r = await client.post(
        "/api/auth/register", json={"email": "ana@example.com", "password": "secret123", "name": "Ana"}
    )
    assert r.status_code == 400
    assert r.json()["error"]["code"] == "STORE_REQUIRED"


async def test_forgot_password_never_reveals_accounts(client, session, mailbox):
    await make_store(session)
    r = await client.post("/api/auth/forgot-password?store=tienda", json={"email": "nadie@example.com"})
    assert r.status_code == 200
    assert r.json()["success"] is True
    assert len(mailbox.outbox) == 0


async def test_checkout_over_http(client, session, mailbox):
    store = await make_store(session)
    product = await make_product(session, store, price=1500000, stock=20)

    r = await client.post(
        "/api/orders",
        json={
            "customer_name": "Ana Pérez",
            "customer_email": "ana@example.com",
            "shipping_cost": 350000,
            "items": [{"product_id": product.id, "quantity": 2}],
        },
    )
    assert r.status_code == 201, r.text
    body = r.json()
    assert body["total"] == 3350000
    assert body["status"] == "pending"
    assert sorted(m["to"] for m in mailbox.outbox) == ["ana@example.com", "owner@example.com"]

    got = await client.get(f"/api/orders/{body['order_number']}?store=tienda")
    assert got.status_code == 200
    assert [it["quantity"] for it in got.json()["items"]] == [2]


async def test_checkout_validation_errors(client, session):
    store = await make_store(session)
    product = await make_product(session, store, stock=1)

    bad_email = await client.post(
        "/api/orders",
        json={"customer_name": "Ana", "customer_email": "no-es-email", "items": [{"product_id": product.id, "quantity": 1}]},
    )
    assert bad_email.status_code == 422
    problem = bad_email.json()
    assert problem["error_code"] == "request_validation_error"
    assert any(d["path"].endswith("customer_email") for d in problem["details"])

    no_stock = await client.post(
        "/api/orders?store=tienda",
        json={"customer_name": "Ana", "customer_email": "ana@example.com", "items": [{"product_id": product.id, "quantity": 3}]},
    )
    assert no_stock.status_code == 400
    assert no_stock.json()["error"]["code"] == "INSUFFICIENT_STOCK"
