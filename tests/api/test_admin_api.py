# tests/api/test_admin_api.py
import pytest

from storefront.services.config_service import ConfigService
from tests.factories import auth_header, make_order, make_product, make_store, make_user

pytestmark = pytest.mark.asyncio


async def test_config_round_trip_hides_credentials(client, session):
    store = await make_store(session)
    admin = await make_user(session, store)
    h = auth_header(admin)

    r = await client.put(
        "/api/admin/config?store=tienda",
        json={"entries": {"banner_text": "Envío gratis", "huggingface_api_key": "hf_abc"}},
        headers=h,
    )
    assert r.json() == {"success": True, "keys": ["banner_text", "huggingface_api_key"]}

    public = await client.get("/api/config?store=tienda")
    assert public.json() == {"banner_text": "Envío gratis"}

    masked = await client.get("/api/admin/config?store=tienda", headers=h)
    assert masked.json()["huggingface_api_key"] == "********"

    plain = await client.get("/api/admin/config?store=tienda&include_secrets=true", headers=h)
    assert plain.json()["huggingface_api_key"] == "hf_abc"
    assert await ConfigService(session, store.id).get_config("huggingface_api_key") == "hf_abc"


async def test_license_usage_and_activation(client, session):
    store = await make_store(session, plan="starter")
    admin = await make_user(session, store)
    root = await make_user(session, None, email="root@example.com", role="super_admin")
    await make_product(session, store)

    usage = await client.get("/api/license/usage?store=tienda", headers=auth_header(admin))
    assert usage.status_code == 200
    assert (usage.json()["product_count"], usage.json()["max_products"]) == (1, 50)

    generated = await client.post(
        "/api/licenses", json={"plan": "pro", "duration": "1month"}, headers=auth_header(root)
    )
    assert generated.status_code == 201
    serial = generated.json()["serial"]

    activated = await client.post(
        "/api/license/activate?store=tienda", json={"serial": serial}, headers=auth_header(admin)
    )
    assert activated.status_code == 200
    assert activated.json()["store_id"] == store.id

    current = await client.get("/api/stores/current?store=tienda")
    assert current.json()["plan"] == "pro"

    bad_plan = await client.post("/api/licenses", json={"plan": "gold"}, headers=auth_header(root))
    assert bad_plan.status_code == 422
    assert bad_plan.json()["error"]["code"] == "INVALID_PLAN"


async def test_dashboard_and_sales_report(client, session):
    store = await make_store(session)
    admin = await make_user(session, store)
    await make_order(session, store, await make_product(session, store, price=1000000), quantity=3)

    dash = await client.get("/api/admin/analytics/dashboard?store=tienda&days=7", headers=auth_header(admin))
    assert dash.status_code == 200
    assert dash.json()["total_revenue"] == 3000000

    report = await client.get("/api/admin/reports/sales?store=tienda&period=year", headers=auth_header(admin))
    assert report.json()["orders"] == 1

    bad = await client.get("/api/admin/reports/sales?store=tienda&period=forever", headers=auth_header(admin))
    assert bad.status_code == 422
    assert bad.json()["error"]["code"] == "INVALID_PERIOD"


async def test_webhook_with_bad_signature_is_rejected(client, session):
    store = await make_store(session)
    await ConfigService(session, store.id).set_config("mercadopago_webhook_secret", "whsec")

    r = await client.post(
        f"/api/payments/webhook?storeId={store.id}&data.id=123&type=payment",
        json={"type": "payment", "data": {"id": "123"}},
        headers={"x-signature": "ts=1,v1=deadbeef", "x-request-id": "req-1"},
    )
    assert r.status_code == 401
    assert r.json()["error"]["code"] == "INVALID_SIGNATURE"


async def test_webhook_needs_a_store(client):
    r = await client.post("/api/payments/webhook", json={"type": "payment", "data": {"id": "1"}})
    assert r.status_code == 400
    assert r.json()["error"]["code"] == "STORE_REQUIRED"
