# storefront/api/routers/stock_routes.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.api.deps import get_current_user, get_session
from storefront.api.routers.stock_schemas import StockUpdateIn, ThresholdIn
from storefront.api.store_resolver import StoreInfo, require_store_admin
from storefront.models import User
from storefront.services.config_service import ConfigService
from storefront.services.stock_service import StockService


def register(router: APIRouter) -> None:
    @router.get("/low")
    async def low_stock(
        session: AsyncSession = Depends(get_session),
        store: StoreInfo = Depends(require_store_admin),
    ):
        return await StockService(session, store.id).get_low_stock()

    @router.get("/out-of-stock")
    async def out_of_stock(
        session: AsyncSession = Depends(get_session),
        store: StoreInfo = Depends(require_store_admin),
    ):
        return {"products": await StockService(session, store.id).get_out_of_stock()}

    @router.get("/summary")
    async def stock_summary(
        session: AsyncSession = Depends(get_session),
        store: StoreInfo = Depends(require_store_admin),
    ):
        return await StockService(session, store.id).get_summary()

    @router.get("/threshold")
    async def get_threshold(
        session: AsyncSession = Depends(get_session),
        store: StoreInfo = Depends(require_store_admin),
    ):
        return {"threshold": await StockService(session, store.id).get_threshold()}

    @router.put("/threshold")
    async def set_threshold(
        body: ThresholdIn,
        session: AsyncSession = Depends(get_session),
        store: StoreInfo = Depends(require_store_admin),
    ):
        await ConfigService(session, store.id).set_config("low_stock_threshold", body.threshold)
        return {"threshold": body.threshold}

    @router.get("/movements")
    async def stock_movements(
        product_id: Optional[str] = Query(None),
        limit: int = Query(50, ge=1, le=500),
        session: AsyncSession = Depends(get_session),
        store: StoreInfo = Depends(require_store_admin),
    ):
        return {"movements": await StockService(session, store.id).get_movements(product_id, limit)}

    @router.put("/{product_id}")
    async def update_stock(
        product_id: str,
        body: StockUpdateIn,
        session: AsyncSession = Depends(get_session),
        store: StoreInfo = Depends(require_store_admin),
        user: User = Depends(get_current_user),
    ):
        return await StockService(session, store.id).update_stock(
            product_id,
            body.stock,
            reason=body.reason or "manual_update",
            user_id=user.id,
        )
