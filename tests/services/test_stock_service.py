# tests/services/test_stock_service.py
import pytest

from storefront.api.errors import NotFoundError, ValidationError
from storefront.services.config_service import ConfigService
from storefront.services.stock_service import StockService
from tests.factories import make_product, make_store


async def _catalog(session):
    store = await make_store(session)
    await make_product(session, store, name="Agotado", stock=0, price=1000)
    await make_product(session, store, name="Poco", stock=3, price=2000)
    await make_product(session, store, name="Justo", stock=5, price=100)
    await make_product(session, store, name="Mucho", stock=40, price=10)
    return store


@pytest.mark.asyncio
async def test_low_and_out_of_stock(session, email):
    store = await _catalog(session)
    svc = StockService(session, store.id, email=email)

    low = await svc.get_low_stock()
    assert low["threshold"] == 5
    assert [p["name"] for p in low["products"]] == ["Poco", "Justo"]
    assert [p["name"] for p in await svc.get_out_of_stock()] == ["Agotado"]


@pytest.mark.asyncio
async def test_threshold_comes_from_store_config(session, email):
    store = await _catalog(session)
    await ConfigService(session, store.id).set_config("low_stock_threshold", 3)
    svc = StockService(session, store.id, email=email)

    assert await svc.get_threshold() == 3
    assert [p["name"] for p in (await svc.get_low_stock())["products"]] == ["Poco"]


@pytest.mark.asyncio
async def test_summary(session, email):
    store = await _catalog(session)
    summary = await StockService(session, store.id, email=email).get_summary()
    assert summary == {
        "total_products": 4,
        "in_stock": 1,
        "low_stock": 2,
        "out_of_stock": 1,
        "total_stock_value": 3 * 2000 + 5 * 100 + 40 * 10,
    }


@pytest.mark.asyncio
async def test_update_stock_records_movement(session, email):
    store = await make_store(session)
    product = await make_product(session, store, stock=10)
    svc = StockService(session, store.id, email=email)

    result = await svc.update_stock(product.id, 25, reason="restock", user_id="u-1")
    assert result == {
        "product_id": product.id,
        "previous_stock": 10,
        "new_stock": 25,
        "change": 15,
        "stock_status": "En stock",
    }
    await svc.update_stock(product.id, 2)

    movements = await svc.get_movements(product.id)
    assert sorted((m["previous_stock"], m["new_stock"]) for m in movements) == [(10, 25), (25, 2)]
    assert {m["reason"] for m in movements} == {"restock", "manual_update"}
    # the decrease crossed the threshold
    assert [m["to"] for m in email.transport.outbox] == ["owner@example.com"]


@pytest.mark.asyncio
async def test_update_stock_validation(session, email):
    store = await make_store(session)
    svc = StockService(session, store.id, email=email)
    with pytest.raises(ValidationError):
        await svc.update_stock("any", -1)
    with pytest.raises(NotFoundError):
        await svc.update_stock("missing", 3)
