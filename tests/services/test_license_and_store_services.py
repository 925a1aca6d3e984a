# tests/services/test_license_and_store_services.py
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import select

from storefront.api.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from storefront.models import License, Store
from storefront.services.license_service import LicenseService, check_license_status
from storefront.services.store_service import StoreService, normalize_domain
from tests.factories import make_order, make_product, make_store

NOW = datetime(2026, 5, 1, tzinfo=timezone.utc)


def test_check_license_status():
    assert check_license_status(None)["reason"] == "NO_LICENSE"
    assert check_license_status(License(serial="S", status="revoked"))["reason"] == "LICENSE_REVOKED"
    assert check_license_status(License(serial="S", status="suspended"))["reason"] == "LICENSE_SUSPENDED"

    expired = License(serial="S", status="active", expires_at=NOW - timedelta(seconds=1))
    assert check_license_status(expired, now=NOW) == {"valid": False, "status": "expired", "reason": "LICENSE_EXPIRED"}

    naive_future = License(serial="S", status="active", expires_at=datetime(2026, 6, 1))
    assert check_license_status(naive_future, now=NOW)["valid"] is True


@pytest.mark.asyncio
async def test_usage_counts_products_and_monthly_orders(session):
    store = await make_store(session, plan="starter")
    product = await make_product(session, store)
    for _ in range(3):
        await make_product(session, store, name="extra")
    await make_order(session, store, product)

    usage = await LicenseService(session).usage(store.id)
    assert usage["plan"] == "starter"
    assert (usage["product_count"], usage["max_products"]) == (4, 50)
    assert (usage["order_count"], usage["max_orders"]) == (1, 100)
    assert usage["product_percentage"] == 8
    assert usage["can_create_order"] is True


@pytest.mark.asyncio
async def test_usage_unlimited_plan(session):
    store = await make_store(session, plan="enterprise")
    usage = await LicenseService(session).usage(store.id)
    assert usage["max_products"] == 999999
    assert usage["product_percentage"] == 0


@pytest.mark.asyncio
async def test_usage_and_status_without_license(session):
    store = await make_store(session, with_license=False)
    svc = LicenseService(session)
    assert await svc.usage(store.id) is None
    assert (await svc.status(store.id))["reason"] == "NO_LICENSE"


@pytest.mark.asyncio
async def test_generate_and_activate_moves_the_store_plan(session, async_session_maker):
    store = await make_store(session, plan="free")
    svc = LicenseService(session)
    old_serial = store.license_key

    lic = await svc.generate(plan="pro", duration="1year", owner_email="dueño@example.com")
    assert lic.status == "generated"
    assert lic.max_products == 2000
    assert lic.expires_at is not None

    await svc.activate(serial=lic.serial.lower(), store_id=store.id)

    async with async_session_maker() as fresh:
        saved = await fresh.get(Store, store.id)
        active = await fresh.get(License, lic.serial)
        previous = await fresh.get(License, old_serial)
    assert saved.plan == "pro"
    assert saved.license_key == lic.serial
    assert active.status == "active"
    assert active.store_id == store.id
    assert previous.store_id is None

    status = await svc.status(store.id)
    assert status["valid"] is True
    assert status["serial"] == lic.serial


@pytest.mark.asyncio
async def test_activate_errors(session):
    store = await make_store(session)
    other = await make_store(session, domain="otra")
    store_id, other_serial = store.id, other.license_key
    svc = LicenseService(session)

    with pytest.raises(ValidationError):
        await svc.activate(serial="bad", store_id=store_id)
    with pytest.raises(NotFoundError):
        await svc.activate(serial="TND-0000-0000-0000", store_id=store_id)
    with pytest.raises(ConflictError) as ei:
        await svc.activate(serial=other_serial, store_id=store_id)
    assert ei.value.code == "LICENSE_IN_USE"

    expired = License(
        serial="TND-AAAA-BBBB-CCCC", plan="pro", status="generated", expires_at=datetime.now(timezone.utc) - timedelta(days=1)
    )
    session.add(expired)
    await session.commit()
    with pytest.raises(ForbiddenError) as ei:
        await svc.activate(serial=expired.serial, store_id=store_id)
    assert ei.value.code == "LICENSE_EXPIRED"


# ---------------------------------------------------------------------------
# stores
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("domain", ["", "-tienda", "tienda-", "mi tienda", "tienda.com", "ñandu"])
def test_normalize_domain_rejects(domain):
    with pytest.raises(ValidationError):
        normalize_domain(domain)


def test_normalize_domain_lowercases():
    assert normalize_domain("  Mi-Tienda2 ") == "mi-tienda2"


@pytest.mark.asyncio
async def test_create_store_provisions_license_and_mails_owner(session, email, async_session_maker):
    svc = StoreService(session, email=email)
    store = await svc.create_store(name="Lima Store", domain="Lima", owner_email="owner@example.com", plan="trial")

    assert store.domain == "lima"
    assert store.status == "trial"
    async with async_session_maker() as fresh:
        lic = (await fresh.execute(select(License).where(License.store_id == store.id))).scalar_one()
    assert lic.serial == store.license_key
    assert lic.status == "active"
    assert (lic.max_products, lic.max_orders) == (5, 10)
    assert len(email.transport.outbox) == 2

    with pytest.raises(ConflictError):
        await svc.create_store(name="Otra", domain="lima", owner_email="x@example.com")


@pytest.mark.asyncio
async def test_store_status_and_soft_delete(session, email):
    store = await make_store(session)
    svc = StoreService(session, email=email)

    with pytest.raises(ValidationError):
        await svc.set_status(store.id, "closed")
    assert (await svc.set_status(store.id, "suspended")).status == "suspended"

    await svc.soft_delete(store.id)
    assert (await svc.get_by_id(store.id)).deleted_at is not None
    with pytest.raises(NotFoundError):
        await svc.set_status(store.id, "active")
    with pytest.raises(NotFoundError):
        await svc.soft_delete("missing")
