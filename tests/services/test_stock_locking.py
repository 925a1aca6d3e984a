# tests/services/test_stock_locking.py
"""
Rows whose stock is read and rewritten are selected FOR UPDATE, and the
low-stock mail leaves only after the store transaction is closed.

sqlite renders no FOR UPDATE, so the ORM statements the services execute
are captured and compiled with the Postgres dialect.
"""

import pytest
from sqlalchemy import event
from sqlalchemy.dialects import postgresql
from sqlalchemy.sql import Select

from storefront.services.email_service import EmailService, MockTransport
from storefront.services.order_service import OrderService
from storefront.services.product_service import ProductService
from storefront.services.stock_service import StockService
from tests.factories import make_order, make_product, make_store


@pytest.fixture
def locked_selects(session):
    seen = []

    def _capture(state):
        if state.is_select and isinstance(state.statement, Select):
            sql = str(state.statement.compile(dialect=postgresql.dialect()))
            if "FOR UPDATE" in sql:
                seen.append(sql)

    event.listen(session.sync_session, "do_orm_execute", _capture)
    yield seen
    event.remove(session.sync_session, "do_orm_execute", _capture)


class TxRecordingTransport(MockTransport):
    """Notes whether the session still had a transaction open at send time."""

    def __init__(self, session):
        super().__init__()
        self.session = session
        self.in_tx = []

    def send(self, msg):
        self.in_tx.append(self.session.in_transaction())
        super().send(msg)


def _checkout(product_id, quantity=1):
    return {
        "customer_name": "Ana Pérez",
        "customer_email": "ana@example.com",
        "shipping_address": "Av. Colón 123, Bahía Blanca",
        "items": [{"product_id": product_id, "quantity": quantity}],
    }


@pytest.mark.asyncio
async def test_checkout_locks_product_rows(session, email, locked_selects):
    store = await make_store(session)
    product = await make_product(session, store, stock=10)

    await OrderService(session, store.id, email=email).create_order(_checkout(product.id))

    assert any("FROM products" in sql for sql in locked_selects)


@pytest.mark.asyncio
async def test_cancel_locks_order_and_product_rows(session, email, locked_selects):
    store = await make_store(session)
    product = await make_product(session, store)
    order = await make_order(session, store, product)

    await OrderService(session, store.id, email=email).update_order_status(order.id, "cancelled")

    assert any("FROM orders" in sql for sql in locked_selects)
    assert any("FROM products" in sql for sql in locked_selects)


@pytest.mark.asyncio
async def test_manual_stock_update_locks_product_row(session, email, locked_selects):
    store = await make_store(session)
    product = await make_product(session, store, stock=10)

    await StockService(session, store.id, email=email).update_stock(product.id, 4)
    await ProductService(session, store.id, email=email).update_product(product.id, {"stock": 3})

    assert len([sql for sql in locked_selects if "FROM products" in sql]) == 2


@pytest.mark.asyncio
async def test_read_paths_take_no_locks(session, email, locked_selects):
    store = await make_store(session)
    product = await make_product(session, store)

    await ProductService(session, store.id, email=email).get_product(product.id)
    await StockService(session, store.id, email=email).get_low_stock()

    assert locked_selects == []


@pytest.mark.asyncio
async def test_low_stock_mail_is_sent_after_commit_on_checkout(session):
    store = await make_store(session)
    product = await make_product(session, store, stock=6)
    transport = TxRecordingTransport(session)

    await OrderService(session, store.id, email=EmailService(transport=transport)).create_order(
        _checkout(product.id, quantity=2)
    )

    assert any("Stock Bajo" in m["subject"] for m in transport.outbox)
    assert transport.in_tx and not any(transport.in_tx)


@pytest.mark.asyncio
async def test_low_stock_mail_is_sent_after_commit_on_stock_changes(session):
    store = await make_store(session)
    product = await make_product(session, store, stock=20)
    transport = TxRecordingTransport(session)
    mailer = EmailService(transport=transport)

    await StockService(session, store.id, email=mailer).update_stock(product.id, 2)
    await ProductService(session, store.id, email=mailer).update_product(product.id, {"stock": 1})

    assert len(transport.outbox) == 2
    assert transport.in_tx == [False, False]
