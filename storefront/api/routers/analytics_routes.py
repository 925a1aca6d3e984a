# storefront/api/routers/analytics_routes.py
from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.api.deps import get_session
from storefront.api.store_resolver import StoreInfo, require_store_admin
from storefront.services.analytics_service import AnalyticsService


def register(router: APIRouter) -> None:
    @router.get("/analytics/dashboard")
    async def dashboard(
        days: int = Query(30, ge=1, le=365),
        session: AsyncSession = Depends(get_session),
        store: StoreInfo = Depends(require_store_admin),
    ):
        return await AnalyticsService(session, store.id).get_dashboard(days)

    @router.get("/reports/sales")
    async def sales_summary(
        period: str = Query("month", description="today | week | month | year"),
        session: AsyncSession = Depends(get_session),
        store: StoreInfo = Depends(require_store_admin),
    ):
        return await AnalyticsService(session, store.id).get_sales_summary(period)
