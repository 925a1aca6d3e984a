# storefront/services/config_service.py
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.crypto import InvalidToken, decrypt_secret, encrypt_secret
from storefront.db.base import utcnow
from storefront.db.rls import with_store
from storefront.models import StoreConfig

log = logging.getLogger("storefront.config")

SENSITIVE_MARKERS = ("api_key", "secret", "password", "token")
MASK = "********"


def is_sensitive_key(key: str) -> bool:
    k = key.lower()
    return any(m in k for m in SENSITIVE_MARKERS)


class ConfigService:
    """
    Per-store key/value configuration.

    Values are JSON; keys that look like credentials are stored as Fernet
    tokens and decrypted on read.
    """

    def __init__(self, session: AsyncSession, store_id: str) -> None:
        self.session = session
        self.store_id = store_id

    def _decode(self, key: str, raw: Any, default: Any = None) -> Any:
        if raw is None or not is_sensitive_key(key):
            return raw
        try:
            return decrypt_secret(str(raw))
        except InvalidToken:
            log.error("config %s for store %s cannot be decrypted (key rotated?)", key, self.store_id)
            return default

    async def _row(self, key: str) -> Optional[StoreConfig]:
        return await self.session.get(StoreConfig, (self.store_id, key))

    # ---- in-transaction helpers -------------------------------------------

    async def read(self, key: str, default: Any = None) -> Any:
        row = await self._row(key)
        if row is None or row.value is None:
            return default
        return self._decode(key, row.value, default)

    async def write(self, key: str, value: Any) -> None:
        stored = value
        if value is not None and is_sensitive_key(key):
            stored = encrypt_secret(value if isinstance(value, str) else str(value))

        row = await self._row(key)
        if row is None:
            self.session.add(StoreConfig(store_id=self.store_id, key=key, value=stored))
        else:
            row.value = stored
            row.updated_at = utcnow()
        await self.session.flush()

    # ---- route-facing -------------------------------------------------------

    async def get_config(self, key: str, default: Any = None) -> Any:
        async with with_store(self.session, self.store_id):
            return await self.read(key, default)

    async def set_config(self, key: str, value: Any) -> None:
        async with with_store(self.session, self.store_id):
            await self.write(key, value)
        log.info("config %s updated for store %s", key, self.store_id)

    async def get_all_config(self, *, include_secrets: bool = False) -> Dict[str, Any]:
        async with with_store(self.session, self.store_id):
            rows = (
                await self.session.execute(
                    select(StoreConfig).where(StoreConfig.store_id == self.store_id).order_by(StoreConfig.key)
                )
            ).scalars().all()

        out: Dict[str, Any] = {}
        for row in rows:
            if is_sensitive_key(row.key) and not include_secrets:
                out[row.key] = MASK if row.value else None
            else:
                out[row.key] = self._decode(row.key, row.value)
        return out
