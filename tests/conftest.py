# tests/conftest.py
from __future__ import annotations

import os
from typing import AsyncGenerator

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

# ============================================================
# settings are cached on first import: pin the test env first
# ============================================================
os.environ["ENV"] = "dev"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["SMTP_HOST"] = ""
os.environ["SHIPPING_PROVIDER"] = "mock"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["ENCRYPTION_KEY"] = ""
os.environ["MERCADOPAGO_ACCESS_TOKEN"] = ""
os.environ["MERCADOPAGO_WEBHOOK_SECRET"] = ""
os.environ["TRYON_ENDPOINT_URL"] = ""
os.environ["HUGGINGFACE_API_KEY"] = ""

from storefront.api import deps  # noqa: E402
from storefront.api.store_resolver import store_cache  # noqa: E402
from storefront.db.base import Base, init_models  # noqa: E402
from storefront.main import app  # noqa: E402
from storefront.services.email_service import EmailService, MockTransport, get_email_service  # noqa: E402
from storefront.services.shipping import reset_providers  # noqa: E402

# ==========================
# DSN: explicit override, else a throwaway sqlite file per test
# ==========================
TEST_DATABASE_URL = os.getenv("STOREFRONT_TEST_DATABASE_URL")


# =========================================
# one engine per test (NullPool, no cross-loop reuse)
# =========================================
@pytest_asyncio.fixture(scope="function")
async def async_engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    url = TEST_DATABASE_URL or f"sqlite+aiosqlite:///{tmp_path / 'storefront.db'}"
    engine = create_async_engine(url, poolclass=NullPool, future=True)
    init_models()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture(scope="function")
def async_session_maker(async_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(async_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture(scope="function")
async def session(async_session_maker) -> AsyncGenerator[AsyncSession, None]:
    async with async_session_maker() as sess:
        try:
            yield sess
        finally:
            if sess.in_transaction():
                await sess.rollback()


# =========================================
# process-wide state reset between tests
# =========================================
@pytest.fixture(autouse=True)
def _reset_process_state():
    store_cache.invalidate()
    reset_providers()
    transport = get_email_service().transport
    if isinstance(transport, MockTransport):
        transport.outbox.clear()
    yield
    store_cache.invalidate()
    reset_providers()


@pytest.fixture
def email() -> EmailService:
    """Service-level email double; inspect email.transport.outbox."""
    return EmailService(transport=MockTransport())


@pytest.fixture
def mailbox() -> MockTransport:
    """Outbox of the process-wide email service used by the HTTP layer."""
    return get_email_service().transport


# =========================================
# FastAPI / httpx AsyncClient
# =========================================
@pytest_asyncio.fixture(scope="function")
async def client(async_session_maker) -> AsyncGenerator[httpx.AsyncClient, None]:
    async def _get_session() -> AsyncGenerator[AsyncSession, None]:
        async with async_session_maker() as sess:
            yield sess

    app.dependency_overrides[deps.get_session] = _get_session
    transport = httpx.ASGITransport(app=app)
    try:
        async with httpx.AsyncClient(
            transport=transport,
            base_url="http://testserver",
            timeout=httpx.Timeout(10.0, connect=5.0, read=10.0, write=5.0, pool=5.0),
        ) as c:
            yield c
    finally:
        app.dependency_overrides.pop(deps.get_session, None)
