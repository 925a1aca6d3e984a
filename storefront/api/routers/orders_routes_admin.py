# storefront/api/routers/orders_routes_admin.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.api.deps import get_session
from storefront.api.routers.orders_schemas import OrderStatusIn, OrderStatusLiteral, VerifyReceiptIn
from storefront.api.store_resolver import StoreInfo, require_store_admin
from storefront.services.order_service import OrderService


def register(router: APIRouter) -> None:
    @router.get("/admin/orders")
    async def list_orders(
        status: Optional[OrderStatusLiteral] = Query(None),
        limit: int = Query(50, ge=1, le=500),
        offset: int = Query(0, ge=0),
        session: AsyncSession = Depends(get_session),
        store: StoreInfo = Depends(require_store_admin),
    ):
        return await OrderService(session, store.id).list_orders(status=status, limit=limit, offset=offset)

    @router.get("/admin/orders/pending-receipts")
    async def pending_receipts(
        session: AsyncSession = Depends(get_session),
        store: StoreInfo = Depends(require_store_admin),
    ):
        return {"orders": await OrderService(session, store.id).get_pending_receipts()}

    @router.get("/admin/orders/{order_id}")
    async def get_order(
        order_id: str,
        session: AsyncSession = Depends(get_session),
        store: StoreInfo = Depends(require_store_admin),
    ):
        return await OrderService(session, store.id).get_order(order_id)

    @router.put("/admin/orders/{order_id}/status")
    async def update_status(
        order_id: str,
        body: OrderStatusIn,
        session: AsyncSession = Depends(get_session),
        store: StoreInfo = Depends(require_store_admin),
    ):
        return await OrderService(session, store.id).update_order_status(
            order_id,
            body.status,
            notes=body.notes,
            tracking_number=body.tracking_number,
            carrier=body.carrier,
        )

    @router.post("/admin/orders/{order_id}/verify-receipt")
    async def verify_receipt(
        order_id: str,
        body: VerifyReceiptIn,
        session: AsyncSession = Depends(get_session),
        store: StoreInfo = Depends(require_store_admin),
    ):
        message = await OrderService(session, store.id).verify_receipt(order_id, body.approved, body.notes)
        return {"success": True, "message": message}
