# storefront/services/wishlist_service.py
from __future__ import annotations

from typing import Any, Dict, List

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.api.errors import NotFoundError
from storefront.db.rls import with_store
from storefront.models import Product, WishlistItem
from storefront.services.product_service import product_to_dict


class WishlistService:
    def __init__(self, session: AsyncSession, store_id: str, user_id: str) -> None:
        self.session = session
        self.store_id = store_id
        self.user_id = user_id

    async def list_items(self) -> List[Dict[str, Any]]:
        async with with_store(self.session, self.store_id):
            rows = (
                await self.session.execute(
                    select(WishlistItem, Product)
                    .join(Product, Product.id == WishlistItem.product_id)
                    .where(WishlistItem.store_id == self.store_id, WishlistItem.user_id == self.user_id)
                    .order_by(WishlistItem.created_at.desc())
                )
            ).all()
            return [
                {"id": w.id, "added_at": w.created_at.isoformat() if w.created_at else None, "product": product_to_dict(p)}
                for w, p in rows
            ]

    async def add_item(self, product_id: str) -> bool:
        """Idempotent. Returns True when a new row was inserted."""
        async with with_store(self.session, self.store_id):
            exists = (
                await self.session.execute(
                    select(Product.id).where(Product.id == product_id, Product.store_id == self.store_id)
                )
            ).first()
            if exists is None:
                raise NotFoundError("Producto no encontrado", code="PRODUCT_NOT_FOUND")

            dup = (
                await self.session.execute(
                    select(WishlistItem.id).where(
                        WishlistItem.user_id == self.user_id, WishlistItem.product_id == product_id
                    )
                )
            ).first()
            if dup is not None:
                return False
            self.session.add(WishlistItem(store_id=self.store_id, user_id=self.user_id, product_id=product_id))
            await self.session.flush()
            return True

    async def remove_item(self, product_id: str) -> None:
        async with with_store(self.session, self.store_id):
            await self.session.execute(
                delete(WishlistItem).where(
                    WishlistItem.store_id == self.store_id,
                    WishlistItem.user_id == self.user_id,
                    WishlistItem.product_id == product_id,
                )
            )
