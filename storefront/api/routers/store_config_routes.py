# storefront/api/routers/store_config_routes.py
from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.api.deps import get_session
from storefront.api.routers.store_config_schemas import ConfigBulkIn, ConfigEntryIn
from storefront.api.store_resolver import StoreInfo, require_store, require_store_admin
from storefront.services.config_service import ConfigService, is_sensitive_key


def register(router: APIRouter) -> None:
    @router.get("/config")
    async def public_config(
        session: AsyncSession = Depends(get_session),
        store: StoreInfo = Depends(require_store),
    ):
        """Storefront settings. Credential-like keys are never exposed here, not even masked."""
        cfg = await ConfigService(session, store.id).get_all_config()
        return {k: v for k, v in cfg.items() if not is_sensitive_key(k)}

    @router.get("/admin/config")
    async def admin_config(
        include_secrets: bool = Query(False),
        session: AsyncSession = Depends(get_session),
        store: StoreInfo = Depends(require_store_admin),
    ):
        return await ConfigService(session, store.id).get_all_config(include_secrets=include_secrets)

    @router.post("/admin/config")
    async def set_config(
        body: ConfigEntryIn,
        session: AsyncSession = Depends(get_session),
        store: StoreInfo = Depends(require_store_admin),
    ):
        await ConfigService(session, store.id).set_config(body.key, body.value)
        return {"success": True, "key": body.key}

    @router.put("/admin/config")
    async def set_config_bulk(
        body: ConfigBulkIn,
        session: AsyncSession = Depends(get_session),
        store: StoreInfo = Depends(require_store_admin),
    ):
        svc = ConfigService(session, store.id)
        for key, value in body.entries.items():
            await svc.set_config(key, value)
        return {"success": True, "keys": sorted(body.entries)}
