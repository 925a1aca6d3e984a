# tests/services/test_payment_service.py
import hashlib
import hmac
import json

import httpx
import pytest

from storefront.api.errors import AuthError, BizError, NotFoundError, UpstreamError
from storefront.core.config import AppSettings
from storefront.models import Order
from storefront.services.config_service import ConfigService
from storefront.services.payment_service import (
    MercadoPagoProvider,
    PaymentProvider,
    PaymentProviderError,
    PaymentService,
    parse_signature_header,
    verify_mercadopago_signature,
)
from tests.factories import make_order, make_product, make_store

SECRET = "whsec-test"


def _sign(data_id: str, request_id: str, ts: str = "1704908010", secret: str = SECRET) -> str:
    manifest = f"id:{data_id};request-id:{request_id};ts:{ts};"
    digest = hmac.new(secret.encode(), manifest.encode(), hashlib.sha256).hexdigest()
    return f"ts={ts},v1={digest}"


def test_parse_signature_header():
    assert parse_signature_header("ts=1, v1=abc") == {"ts": "1", "v1": "abc"}
    assert parse_signature_header("garbage,=x,y=") == {}
    assert parse_signature_header("") == {}


def test_verify_signature():
    header = _sign("123", "req-1")
    assert verify_mercadopago_signature(SECRET, x_signature=header, x_request_id="req-1", data_id="123")
    assert not verify_mercadopago_signature(SECRET, x_signature=header, x_request_id="req-2", data_id="123")
    assert not verify_mercadopago_signature("other", x_signature=header, x_request_id="req-1", data_id="123")
    assert not verify_mercadopago_signature(None, x_signature=header, x_request_id="req-1", data_id="123")
    assert not verify_mercadopago_signature(SECRET, x_signature="ts=1", x_request_id="req-1", data_id="123")
    assert not verify_mercadopago_signature(SECRET, x_signature="ts=1,v1=\u00e9\u00e9", x_request_id="req-1", data_id="123")


class FakeProvider(PaymentProvider):
    name = "fake"

    def __init__(self, access_token, webhook_secret, *, payment=None, fail=False):
        self.access_token = access_token
        self.webhook_secret = webhook_secret
        self.payment = payment or {}
        self.fail = fail
        self.preferences = []

    async def create_preference(self, order):
        if self.fail:
            raise PaymentProviderError("boom")
        self.preferences.append(order)
        return {"id": "pref-1", "init_point": "https://mp.test/pay/pref-1", "sandbox_init_point": None}

    def verify_webhook_signature(self, *, x_signature, x_request_id, data_id):
        return verify_mercadopago_signature(
            self.webhook_secret, x_signature=x_signature, x_request_id=x_request_id, data_id=data_id
        )

    async def get_payment_status(self, payment_id):
        return {"id": payment_id, **self.payment}


class Factory:
    def __init__(self, **kw):
        self.kw = kw
        self.built = []

    def __call__(self, access_token, webhook_secret):
        provider = FakeProvider(access_token, webhook_secret, **self.kw)
        self.built.append(provider)
        return provider


SETTINGS = AppSettings(MERCADOPAGO_ACCESS_TOKEN="global-token", MERCADOPAGO_WEBHOOK_SECRET=SECRET)


@pytest.mark.asyncio
async def test_create_checkout_sends_the_order_with_items(session):
    store = await make_store(session)
    order = await make_order(session, store, await make_product(session, store), quantity=2)
    factory = Factory()

    pref = await PaymentService(session, store.id, settings=SETTINGS, provider_factory=factory).create_checkout(
        order.order_number
    )

    assert pref["init_point"] == "https://mp.test/pay/pref-1"
    provider = factory.built[0]
    assert provider.access_token == "global-token"
    sent = provider.preferences[0]
    assert sent["order_number"] == order.order_number
    assert [(it["product_name"], it["quantity"]) for it in sent["items"]] == [("Remera Lima", 2)]


@pytest.mark.asyncio
async def test_store_credentials_take_precedence(session):
    store = await make_store(session)
    order = await make_order(session, store, await make_product(session, store))
    await ConfigService(session, store.id).set_config("mercadopago_access_token", "store-token")
    factory = Factory()

    await PaymentService(session, store.id, settings=SETTINGS, provider_factory=factory).create_checkout(order.id)
    assert factory.built[0].access_token == "store-token"
    assert factory.built[0].webhook_secret == SECRET


@pytest.mark.asyncio
async def test_create_checkout_errors(session):
    store = await make_store(session)
    product = await make_product(session, store)
    paid = await make_order(session, store, product, status="paid")
    pending = await make_order(session, store, product)
    store_id = store.id
    paid_number, pending_number = paid.order_number, pending.order_number

    svc = PaymentService(session, store_id, settings=SETTINGS, provider_factory=Factory())
    with pytest.raises(NotFoundError):
        await svc.create_checkout("ORD-NOPE")
    with pytest.raises(BizError) as ei:
        await svc.create_checkout(paid_number)
    assert (ei.value.code, ei.value.status) == ("ORDER_NOT_PAYABLE", 409)

    failing = PaymentService(session, store_id, settings=SETTINGS, provider_factory=Factory(fail=True))
    with pytest.raises(UpstreamError) as ei:
        await failing.create_checkout(pending_number)
    assert ei.value.code == "PAYMENT_PROVIDER_ERROR"


@pytest.mark.asyncio
async def test_webhook_marks_pending_order_paid(session, async_session_maker):
    store = await make_store(session)
    order = await make_order(session, store, await make_product(session, store))
    factory = Factory(payment={"status": "approved", "external_reference": order.order_number})
    svc = PaymentService(session, store.id, settings=SETTINGS, provider_factory=factory)

    out = await svc.handle_webhook(x_signature=_sign("987", "req-1"), x_request_id="req-1", data_id="987")

    assert out == {"processed": True, "order_number": order.order_number, "status": "paid"}
    async with async_session_maker() as fresh:
        saved = await fresh.get(Order, order.id)
    assert (saved.status, saved.payment_id, saved.payment_status) == ("paid", "987", "approved")


@pytest.mark.asyncio
async def test_webhook_does_not_move_shipped_orders_back(session, async_session_maker):
    store = await make_store(session)
    order = await make_order(session, store, await make_product(session, store), status="shipped")
    factory = Factory(payment={"status": "approved", "external_reference": order.order_number})
    svc = PaymentService(session, store.id, settings=SETTINGS, provider_factory=factory)

    out = await svc.handle_webhook(x_signature=_sign("1", "r"), x_request_id="r", data_id="1")
    assert out["status"] == "shipped"


@pytest.mark.asyncio
async def test_webhook_rejections(session):
    store = await make_store(session)
    svc = PaymentService(
        session,
        store.id,
        settings=SETTINGS,
        provider_factory=Factory(payment={"status": "approved", "external_reference": "ORD-UNKNOWN"}),
    )

    with pytest.raises(AuthError) as ei:
        await svc.handle_webhook(x_signature=_sign("1", "r", secret="forged"), x_request_id="r", data_id="1")
    assert ei.value.code == "INVALID_SIGNATURE"

    ignored = await svc.handle_webhook(
        x_signature=_sign("1", "r"), x_request_id="r", data_id="1", topic="merchant_order"
    )
    assert ignored["processed"] is False

    unknown = await svc.handle_webhook(x_signature=_sign("1", "r"), x_request_id="r", data_id="1")
    assert unknown == {"processed": False, "reason": "order not found"}


# ---------------------------------------------------------------------------
# MercadoPago HTTP client
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_mercadopago_preference_request():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(201, json={"id": "p1", "init_point": "https://mp/p1", "sandbox_init_point": "https://sb/p1"})

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        provider = MercadoPagoProvider(
            access_token="tok", base_url="https://mp.test/", store_url="https://shop.test", client=client
        )
        out = await provider.create_preference(
            {
                "order_number": "ORD-1",
                "customer_email": "ana@example.com",
                "customer_name": "Ana",
                "shipping_cost": 350000,
                "items": [{"product_id": "p1", "product_name": "Remera", "quantity": 2, "price": 1500050}],
            }
        )

    assert out == {"id": "p1", "init_point": "https://mp/p1", "sandbox_init_point": "https://sb/p1"}
    req = seen[0]
    assert str(req.url) == "https://mp.test/checkout/preferences"
    assert req.headers["Authorization"] == "Bearer tok"
    body = json.loads(req.content)
    assert [(i["id"], i["unit_price"]) for i in body["items"]] == [("p1", 15000.5), ("shipping", 3500.0)]
    assert body["external_reference"] == "ORD-1"
    assert body["back_urls"]["success"] == "https://shop.test/#/checkout/success"


@pytest.mark.asyncio
async def test_mercadopago_errors():
    async with httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(400, text="bad"))) as client:
        provider = MercadoPagoProvider(access_token="tok", client=client)
        with pytest.raises(PaymentProviderError):
            await provider.get_payment_status("1")

    with pytest.raises(PaymentProviderError):
        await MercadoPagoProvider(access_token="").get_payment_status("1")


@pytest.mark.asyncio
async def test_mercadopago_payment_status():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/v1/payments/42"
        return httpx.Response(200, json={"id": 42, "status": "approved", "external_reference": "ORD-1"})

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        out = await MercadoPagoProvider(access_token="tok", client=client).get_payment_status("42")
    assert out["id"] == "42"
    assert out["status"] == "approved"
    assert out["currency_id"] == "ARS"
