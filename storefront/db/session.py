# storefront/db/session.py
# Async engine / session factory + FastAPI dependency (get_session)
from __future__ import annotations

import logging
import re
from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from storefront.core.config import get_settings

log = logging.getLogger("storefront.db")


# ---- DSN normalization: psycopg3 for Postgres, aiosqlite for sqlite ----
def normalize_sync_dsn(url: str) -> str:
    if url.startswith("postgresql+asyncpg://") or url.startswith("postgres+asyncpg://"):
        return re.sub(r"^postgres(?:ql)?\+asyncpg://", "postgresql+psycopg://", url)
    if url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql+psycopg://", 1)
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+psycopg://", 1)
    if url.startswith("sqlite+aiosqlite:///"):
        return url.replace("sqlite+aiosqlite:///", "sqlite:///", 1)
    return url


def normalize_async_dsn(url: str) -> str:
    if url.startswith("sqlite:///"):
        return "sqlite+aiosqlite://" + url[len("sqlite:///") - 1 :]
    return normalize_sync_dsn(url) if not url.startswith("sqlite+aiosqlite") else url


def _strip_quotes(raw: str) -> str:
    # some environments ship the value as '"postgresql+psycopg://..."'
    raw = raw.strip()
    if (raw.startswith('"') and raw.endswith('"')) or (raw.startswith("'") and raw.endswith("'")):
        raw = raw[1:-1].strip()
    return raw


_settings = get_settings()
ASYNC_URL = normalize_async_dsn(_strip_quotes(_settings.DATABASE_URL))

async_engine: AsyncEngine = create_async_engine(
    ASYNC_URL,
    future=True,
    pool_pre_ping=True,
    echo=_settings.SQL_ECHO,
)

AsyncSessionLocal: async_sessionmaker[AsyncSession] = async_sessionmaker(
    bind=async_engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


# ---- FastAPI dependency ----
async def get_session() -> AsyncGenerator[AsyncSession, None]:
    async with AsyncSessionLocal() as session:
        yield session


async def close_engines() -> None:
    await async_engine.dispose()
