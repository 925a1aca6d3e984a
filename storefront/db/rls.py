# storefront/db/rls.py
"""
Tenant isolation via Postgres row-level security.

Every tenant table carries a policy of the form

    store_id = current_setting('app.current_store_id', true)

so a transaction only sees rows of the store it declared with
``set_config(..., true)``. The setting is transaction-local: it vanishes at
commit/rollback and never leaks into a pooled connection.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

log = logging.getLogger("storefront.rls")

CURRENT_STORE_SETTING = "app.current_store_id"


def _supports_rls(session: AsyncSession) -> bool:
    return session.get_bind().dialect.name == "postgresql"


async def set_current_store(session: AsyncSession, store_id: str) -> None:
    if not _supports_rls(session):
        return
    await session.execute(
        text("SELECT set_config(:name, :store_id, true)"),
        {"name": CURRENT_STORE_SETTING, "store_id": store_id},
    )


@asynccontextmanager
async def _transaction(session: AsyncSession) -> AsyncIterator[None]:
    # reuse an autobegun transaction; otherwise open one
    if session.in_transaction():
        try:
            yield
        except BaseException:
            await session.rollback()
            raise
        await session.commit()
        return

    async with session.begin():
        yield


@asynccontextmanager
async def with_store(session: AsyncSession, store_id: str) -> AsyncIterator[AsyncSession]:
    """
    Run the block inside one transaction with app.current_store_id = store_id.
    """
    if not store_id:
        raise ValueError("RLS with_store called without store_id")

    async with _transaction(session):
        await set_current_store(session, store_id)
        yield session


@asynccontextmanager
async def with_store_context(
    session: AsyncSession, store_id: Optional[str]
) -> AsyncIterator[AsyncSession]:
    """
    Like with_store, but tolerates a missing store_id (public / super-admin
    access): the transaction runs without the setting, so strict policies
    return no tenant rows.
    """
    if not store_id:
        log.debug("with_store_context without store_id: RLS variable not set")
        async with _transaction(session):
            yield session
        return

    async with with_store(session, store_id) as s:
        yield s
