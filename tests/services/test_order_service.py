# tests/services/test_order_service.py
import pytest
from sqlalchemy import select

from storefront.api.errors import BizError, ForbiddenError, NotFoundError, ValidationError
from storefront.models import AbandonedCart, Order, Product
from storefront.services.order_service import OrderService
from tests.factories import make_order, make_product, make_store, make_user


def _checkout(*items, **kw):
    data = {
        "customer_name": "Ana Pérez",
        "customer_email": "ana@example.com",
        "shipping_address": "Av. Colón 123, Bahía Blanca",
        "shipping_cost": 350000,
        "payment_method": "transfer",
        "items": list(items),
    }
    data.update(kw)
    return data


@pytest.mark.asyncio
async def test_checkout_prices_from_catalog_and_decrements_stock(session, email, async_session_maker):
    store = await make_store(session)
    remera = await make_product(session, store, price=1500000, stock=20)
    gorra = await make_product(session, store, name="Gorra", price=800000, stock=10)

    result = await OrderService(session, store.id, email=email).create_order(
        _checkout(
            {"product_id": remera.id, "quantity": 2, "price": 1},
            {"product_id": gorra.id, "quantity": 1, "size": "M"},
        )
    )

    assert result["status"] == "pending"
    assert result["total"] == 2 * 1500000 + 800000 + 350000
    assert result["order_number"].startswith("XM-")

    async with async_session_maker() as fresh:
        order = (await fresh.execute(select(Order))).scalar_one()
        stocks = dict((await fresh.execute(select(Product.name, Product.stock))).all())
    assert order.subtotal == 3800000
    assert sorted((it.product_name, it.price, it.quantity) for it in order.items) == [
        ("Gorra", 800000, 1),
        ("Remera Lima", 1500000, 2),
    ]
    assert all(it.store_id == store.id for it in order.items)
    assert stocks == {"Remera Lima": 18, "Gorra": 9}

    # buyer confirmation + owner notification
    assert sorted(m["to"] for m in email.transport.outbox) == ["ana@example.com", "owner@example.com"]


@pytest.mark.asyncio
async def test_checkout_infers_store_from_products(session, email):
    store = await make_store(session)
    product = await make_product(session, store)

    result = await OrderService(session, None, email=email).create_order(
        _checkout({"product_id": product.id, "quantity": 1})
    )
    order = await OrderService(session, store.id, email=email).get_order(result["order_number"])
    assert order["store_id"] == store.id
    assert order["items"][0]["product_id"] == product.id


@pytest.mark.asyncio
async def test_checkout_rejects_products_of_several_stores(session, email):
    a = await make_store(session, domain="a")
    b = await make_store(session, domain="b")
    pa = await make_product(session, a)
    pb = await make_product(session, b)

    with pytest.raises(ValidationError) as ei:
        await OrderService(session, None, email=email).create_order(
            _checkout({"product_id": pa.id, "quantity": 1}, {"product_id": pb.id, "quantity": 1})
        )
    assert ei.value.code == "MIXED_STORES"


@pytest.mark.asyncio
async def test_checkout_insufficient_stock_keeps_everything(session, email, async_session_maker):
    store = await make_store(session)
    product = await make_product(session, store, stock=1)
    product_id = product.id

    with pytest.raises(BizError) as ei:
        await OrderService(session, store.id, email=email).create_order(
            _checkout({"product_id": product_id, "quantity": 2})
        )
    assert ei.value.code == "INSUFFICIENT_STOCK"
    assert ei.value.status == 400

    async with async_session_maker() as fresh:
        assert (await fresh.execute(select(Order.id))).first() is None
        assert (await fresh.get(Product, product_id)).stock == 1
    assert len(email.transport.outbox) == 0


@pytest.mark.asyncio
async def test_checkout_checks_color_variant_stock(session, email, async_session_maker):
    store = await make_store(session)
    product = await make_product(session, store, stock=8, variants_stock={"Rojo": 3, "Azul": 5})
    product_id = product.id
    svc = OrderService(session, store.id, email=email)

    with pytest.raises(BizError):
        await svc.create_order(_checkout({"product_id": product_id, "quantity": 4, "color": "Rojo"}))

    await svc.create_order(_checkout({"product_id": product_id, "quantity": 2, "color": "Rojo"}))
    async with async_session_maker() as fresh:
        saved = await fresh.get(Product, product_id)
    assert saved.stock == 6
    assert saved.variants_stock == {"Rojo": 1, "Azul": 5}


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "data, code",
    [
        (_checkout(), "INCOMPLETE_ORDER"),
        (_checkout({"product_id": "x", "quantity": 1}, customer_email=""), "INCOMPLETE_ORDER"),
        (_checkout({"product_id": "x", "quantity": 0}), "INVALID_QUANTITY"),
    ],
)
async def test_checkout_validation(session, email, data, code):
    store = await make_store(session)
    with pytest.raises(ValidationError) as ei:
        await OrderService(session, store.id, email=email).create_order(data)
    assert ei.value.code == code


@pytest.mark.asyncio
async def test_checkout_unknown_product(session, email):
    store = await make_store(session)
    with pytest.raises(NotFoundError) as ei:
        await OrderService(session, store.id, email=email).create_order(_checkout({"product_id": "nope", "quantity": 1}))
    assert ei.value.code == "PRODUCT_NOT_FOUND"


@pytest.mark.asyncio
async def test_checkout_enforces_monthly_order_limit(session, email):
    store = await make_store(session, plan="trial")
    product = await make_product(session, store, stock=100)
    for _ in range(10):
        await make_order(session, store, product)

    with pytest.raises(ForbiddenError) as ei:
        await OrderService(session, store.id, email=email).create_order(
            _checkout({"product_id": product.id, "quantity": 1})
        )
    assert ei.value.code == "ORDER_LIMIT_EXCEEDED"
    assert ei.value.details == {"current_count": 10, "max_allowed": 10}


@pytest.mark.asyncio
async def test_checkout_alerts_low_stock_and_recovers_cart(session, email, async_session_maker):
    store = await make_store(session)
    product = await make_product(session, store, stock=6)
    session.add(AbandonedCart(store_id=store.id, email="ana@example.com", cart_data={"items": []}))
    await session.commit()

    await OrderService(session, store.id, email=email).create_order(
        _checkout({"product_id": product.id, "quantity": 2})
    )

    subjects = [m["subject"] for m in email.transport.outbox]
    assert any("Stock Bajo" in s for s in subjects)
    async with async_session_maker() as fresh:
        assert (await fresh.execute(select(AbandonedCart.recovered))).scalar_one() is True


@pytest.mark.asyncio
async def test_cancelling_restores_stock(session, email, async_session_maker):
    store = await make_store(session)
    product = await make_product(session, store, stock=8, variants_stock={"Rojo": 3, "Azul": 5})
    svc = OrderService(session, store.id, email=email)
    created = await svc.create_order(_checkout({"product_id": product.id, "quantity": 2, "color": "Azul"}))

    result = await svc.update_order_status(created["id"], "cancelled")
    assert result["status"] == "cancelled"

    async with async_session_maker() as fresh:
        saved = await fresh.get(Product, product.id)
    assert saved.stock == 8
    assert saved.variants_stock == {"Rojo": 3, "Azul": 5}


@pytest.mark.asyncio
async def test_status_update_validates_and_mails_when_shipped(session, email):
    store = await make_store(session)
    product = await make_product(session, store)
    order = await make_order(session, store, product, status="paid")
    svc = OrderService(session, store.id, email=email)

    with pytest.raises(ValidationError):
        await svc.update_order_status(order.id, "lost")

    result = await svc.update_order_status(order.id, "shipped", tracking_number="TRK-1", carrier="andreani")
    assert result["tracking_number"] == "TRK-1"
    assert result["shipping_carrier"] == "andreani"
    assert [m["to"] for m in email.transport.outbox] == ["ana@example.com"]


@pytest.mark.asyncio
async def test_receipt_upload_and_verification(session, email):
    store = await make_store(session)
    product = await make_product(session, store)
    order = await make_order(session, store, product)
    order_id, number = order.id, order.order_number
    svc = OrderService(session, store.id, email=email)

    with pytest.raises(ValidationError) as ei:
        await svc.verify_receipt(order_id, True)
    assert ei.value.code == "NO_RECEIPT"

    await svc.upload_receipt(number, "https://cdn.example.com/r.jpg")
    pending = await svc.get_pending_receipts()
    assert [o["id"] for o in pending] == [order_id]

    assert await svc.verify_receipt(order_id, False, "Ilegible") == "Comprobante rechazado"
    assert (await svc.get_order(order_id))["status"] == "pending"

    assert await svc.verify_receipt(order_id, True) == "Comprobante aprobado, orden marcada como pagada"
    saved = await svc.get_order(order_id)
    assert saved["status"] == "paid"
    assert saved["receipt_verified"] is True
    assert await svc.get_pending_receipts() == []


@pytest.mark.asyncio
async def test_listing_is_store_scoped(session, email):
    a = await make_store(session, domain="a")
    b = await make_store(session, domain="b")
    pa = await make_product(session, a)
    pb = await make_product(session, b)
    await make_order(session, a, pa, status="paid")
    await make_order(session, a, pa)
    await make_order(session, b, pb)

    listed = await OrderService(session, a.id, email=email).list_orders()
    assert listed["total"] == 2
    paid = await OrderService(session, a.id, email=email).list_orders(status="paid")
    assert [o["status"] for o in paid["orders"]] == ["paid"]


@pytest.mark.asyncio
async def test_get_order_of_another_store_is_not_found(session, email):
    a = await make_store(session, domain="a")
    b = await make_store(session, domain="b")
    order = await make_order(session, a, await make_product(session, a))

    with pytest.raises(NotFoundError):
        await OrderService(session, b.id, email=email).get_order(order.id)


@pytest.mark.asyncio
async def test_user_orders_only_lists_the_buyers_orders(session, email):
    store = await make_store(session)
    product = await make_product(session, store)
    buyer = await make_user(session, store, role="customer", email="ana@example.com")
    svc = OrderService(session, store.id, email=email)

    mine = await svc.create_order(_checkout({"product_id": product.id, "quantity": 1}), user_id=buyer.id)
    await svc.create_order(_checkout({"product_id": product.id, "quantity": 1}, customer_email="otro@example.com"))

    orders = await svc.get_user_orders(buyer.id)
    assert [o["order_number"] for o in orders] == [mine["order_number"]]
    assert orders[0]["user_id"] == buyer.id
