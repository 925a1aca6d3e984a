# storefront/services/cart_service.py
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.api.errors import ValidationError
from storefront.db.rls import with_store
from storefront.models import AbandonedCart

log = logging.getLogger("storefront.carts")


class CartService:
    """
    Abandoned-cart capture. A cart is keyed by email when known, else by the
    browser session id; recovered carts are never updated again.
    """

    def __init__(self, session: AsyncSession, store_id: str) -> None:
        self.session = session
        self.store_id = store_id

    async def _open_cart(self, *, email: Optional[str], session_id: Optional[str]) -> Optional[AbandonedCart]:
        stmt = select(AbandonedCart).where(
            AbandonedCart.store_id == self.store_id,
            AbandonedCart.recovered.is_(False),
        )
        if email:
            stmt = stmt.where(AbandonedCart.email == email)
        else:
            stmt = stmt.where(AbandonedCart.session_id == session_id)
        return (await self.session.execute(stmt.limit(1))).scalar_one_or_none()

    async def save_cart(
        self,
        items: List[Dict[str, Any]],
        *,
        email: Optional[str] = None,
        session_id: Optional[str] = None,
        total: int = 0,
    ) -> bool:
        """Returns False when the cart was skipped (no identifier)."""
        if items is None or not isinstance(items, list):
            raise ValidationError("Invalid items", code="INVALID_ITEMS")
        email = (email or "").strip().lower() or None
        if not email and not session_id:
            return False

        data = {"items": list(items), "total": int(total or 0)}
        async with with_store(self.session, self.store_id):
            cart = await self._open_cart(email=email, session_id=session_id)
            if cart is None:
                self.session.add(
                    AbandonedCart(store_id=self.store_id, email=email, session_id=session_id, cart_data=data)
                )
            else:
                cart.cart_data = data
                cart.email = email or cart.email
            await self.session.flush()
        return True

    async def mark_recovered(self, email: str) -> int:
        """In-transaction: flag the buyer's open carts once an order is placed."""
        if not email:
            return 0
        res = await self.session.execute(
            update(AbandonedCart)
            .where(
                AbandonedCart.store_id == self.store_id,
                AbandonedCart.email == email.strip().lower(),
                AbandonedCart.recovered.is_(False),
            )
            .values(recovered=True)
        )
        if res.rowcount:
            log.info("recovered %s abandoned cart(s) store=%s", res.rowcount, self.store_id)
        return int(res.rowcount or 0)
