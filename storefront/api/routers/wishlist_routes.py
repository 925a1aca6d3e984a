# storefront/api/routers/wishlist_routes.py
from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.api.deps import get_current_user, get_session
from storefront.api.store_resolver import StoreInfo, require_store
from storefront.models import User
from storefront.services.wishlist_service import WishlistService


def register(router: APIRouter) -> None:
    @router.get("")
    async def list_wishlist(
        session: AsyncSession = Depends(get_session),
        store: StoreInfo = Depends(require_store),
        user: User = Depends(get_current_user),
    ):
        return {"items": await WishlistService(session, store.id, user.id).list_items()}

    @router.post("/{product_id}", status_code=status.HTTP_201_CREATED)
    async def add_to_wishlist(
        product_id: str,
        session: AsyncSession = Depends(get_session),
        store: StoreInfo = Depends(require_store),
        user: User = Depends(get_current_user),
    ):
        added = await WishlistService(session, store.id, user.id).add_item(product_id)
        return {"success": True, "added": added}

    @router.delete("/{product_id}", status_code=status.HTTP_204_NO_CONTENT)
    async def remove_from_wishlist(
        product_id: str,
        session: AsyncSession = Depends(get_session),
        store: StoreInfo = Depends(require_store),
        user: User = Depends(get_current_user),
    ) -> None:
        await WishlistService(session, store.id, user.id).remove_item(product_id)
