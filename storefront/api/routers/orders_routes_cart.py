# storefront/api/routers/orders_routes_cart.py
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.api.deps import get_session
from storefront.api.routers.orders_schemas import CartSaveIn
from storefront.api.store_resolver import StoreInfo, require_store
from storefront.services.cart_service import CartService


def register(router: APIRouter) -> None:
    @router.post("/cart/save")
    async def save_cart(
        body: CartSaveIn,
        session: AsyncSession = Depends(get_session),
        store: StoreInfo = Depends(require_store),
    ):
        saved = await CartService(session, store.id).save_cart(
            body.items,
            email=body.email,
            session_id=body.session_id,
            total=body.total,
        )
        return {"success": True, "saved": saved}
