# tests/db/test_rls.py
import pytest
from sqlalchemy import select

from storefront.db.rls import with_store, with_store_context
from storefront.models import Product
from tests.factories import make_product, make_store


@pytest.mark.asyncio
async def test_with_store_requires_store_id(session):
    with pytest.raises(ValueError):
        async with with_store(session, ""):
            pass


@pytest.mark.asyncio
async def test_with_store_commits_the_block(session, async_session_maker):
    store = await make_store(session)
    async with with_store(session, store.id):
        session.add(Product(store_id=store.id, name="Gorra", price=500000))

    async with async_session_maker() as other:
        names = (await other.execute(select(Product.name))).scalars().all()
    assert names == ["Gorra"]


@pytest.mark.asyncio
async def test_with_store_rolls_back_on_error(session, async_session_maker):
    store = await make_store(session)
    with pytest.raises(RuntimeError):
        async with with_store(session, store.id):
            session.add(Product(store_id=store.id, name="Gorra", price=500000))
            await session.flush()
            raise RuntimeError("boom")

    async with async_session_maker() as other:
        assert (await other.execute(select(Product.id))).first() is None


@pytest.mark.asyncio
async def test_with_store_reuses_an_autobegun_transaction(session):
    store = await make_store(session)
    product = await make_product(session, store)
    # autobegin, as a dependency lookup would do
    await session.execute(select(Product.id))
    assert session.in_transaction()

    async with with_store(session, store.id):
        product.stock = 3
    assert not session.in_transaction()


@pytest.mark.asyncio
async def test_with_store_context_tolerates_missing_store(session):
    store = await make_store(session)
    await make_product(session, store)
    async with with_store_context(session, None):
        rows = (await session.execute(select(Product.id))).all()
    assert len(rows) == 1
