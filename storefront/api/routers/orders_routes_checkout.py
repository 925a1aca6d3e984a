# storefront/api/routers/orders_routes_checkout.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.api.deps import get_current_user, get_optional_user, get_session
from storefront.api.routers.orders_schemas import OrderCreatedOut, OrderCreateIn, ReceiptIn
from storefront.api.store_resolver import StoreInfo, resolve_store
from storefront.models import User
from storefront.services.order_service import OrderService


def register(router: APIRouter) -> None:
    @router.post("/orders", response_model=OrderCreatedOut, status_code=status.HTTP_201_CREATED)
    async def create_order(
        body: OrderCreateIn,
        session: AsyncSession = Depends(get_session),
        store: Optional[StoreInfo] = Depends(resolve_store),
        user: Optional[User] = Depends(get_optional_user),
    ) -> OrderCreatedOut:
        """
        Without a resolved store the tenant is inferred from the products;
        they must all belong to one store.
        """
        svc = OrderService(session, store.id if store else None)
        result = await svc.create_order(body.model_dump(), user_id=user.id if user else None)
        return OrderCreatedOut(**result)

    @router.get("/orders/my")
    async def my_orders(
        session: AsyncSession = Depends(get_session),
        store: Optional[StoreInfo] = Depends(resolve_store),
        user: User = Depends(get_current_user),
    ):
        store_id = store.id if store else user.store_id
        return {"orders": await OrderService(session, store_id).get_user_orders(user.id)}

    @router.get("/orders/{order_id}")
    async def get_order(
        order_id: str,
        session: AsyncSession = Depends(get_session),
        store: Optional[StoreInfo] = Depends(resolve_store),
    ):
        return await OrderService(session, store.id if store else None).get_order(order_id)

    @router.post("/orders/{order_number}/receipt")
    async def upload_receipt(
        order_number: str,
        body: ReceiptIn,
        session: AsyncSession = Depends(get_session),
        store: Optional[StoreInfo] = Depends(resolve_store),
    ):
        return await OrderService(session, store.id if store else None).upload_receipt(
            order_number, body.receipt_url
        )
