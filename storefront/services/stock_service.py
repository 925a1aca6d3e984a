# storefront/services/stock_service.py
from __future__ import annotations

from typing import Any, Dict, List, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.api.errors import NotFoundError, ValidationError
from storefront.db.rls import with_store
from storefront.models import Product, StockMovement
from storefront.services.email_service import EmailService, get_email_service
from storefront.services.product_service import (
    collect_low_stock,
    low_stock_threshold,
    send_low_stock_alert,
    stock_status,
)


def _row(p: Product) -> Dict[str, Any]:
    return {
        "id": p.id,
        "name": p.name,
        "stock": p.stock,
        "price": p.price,
        "variants_stock": dict(p.variants_stock) if p.variants_stock else None,
        "stock_status": stock_status(p.stock),
    }


class StockService:
    """
    Stock levels per store:

    - low stock: 0 < stock <= threshold (store config low_stock_threshold, default 5)
    - out of stock: stock <= 0
    - every manual change writes a stock_movements row
    """

    def __init__(self, session: AsyncSession, store_id: str, *, email: EmailService | None = None) -> None:
        self.session = session
        self.store_id = store_id
        self.email = email or get_email_service()

    async def get_threshold(self) -> int:
        async with with_store(self.session, self.store_id):
            return await low_stock_threshold(self.session, self.store_id)

    async def get_low_stock(self) -> Dict[str, Any]:
        async with with_store(self.session, self.store_id):
            threshold = await low_stock_threshold(self.session, self.store_id)
            rows = (
                await self.session.execute(
                    select(Product)
                    .where(Product.store_id == self.store_id, Product.stock > 0, Product.stock <= threshold)
                    .order_by(Product.stock.asc(), Product.name)
                )
            ).scalars().all()
            return {"threshold": threshold, "products": [_row(p) for p in rows]}

    async def get_out_of_stock(self) -> List[Dict[str, Any]]:
        async with with_store(self.session, self.store_id):
            rows = (
                await self.session.execute(
                    select(Product).where(Product.store_id == self.store_id, Product.stock <= 0).order_by(Product.name)
                )
            ).scalars().all()
            return [_row(p) for p in rows]

    async def get_summary(self) -> Dict[str, int]:
        async with with_store(self.session, self.store_id):
            threshold = await low_stock_threshold(self.session, self.store_id)
            in_store = Product.store_id == self.store_id
            row = (
                await self.session.execute(
                    select(
                        func.count(),
                        func.count().filter(Product.stock > threshold),
                        func.count().filter(Product.stock > 0, Product.stock <= threshold),
                        func.count().filter(Product.stock <= 0),
                        func.coalesce(func.sum(Product.price * Product.stock).filter(Product.stock > 0), 0),
                    ).where(in_store)
                )
            ).one()
            return {
                "total_products": int(row[0]),
                "in_stock": int(row[1]),
                "low_stock": int(row[2]),
                "out_of_stock": int(row[3]),
                "total_stock_value": int(row[4]),
            }

    async def update_stock(
        self,
        product_id: str,
        new_stock: int,
        *,
        reason: str = "manual_update",
        user_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        if new_stock < 0:
            raise ValidationError("El stock no puede ser negativo", code="INVALID_STOCK")

        alert = None
        async with with_store(self.session, self.store_id):
            p = (
                await self.session.execute(
                    select(Product)
                    .where(Product.id == product_id)
                    .with_for_update()
                    .execution_options(populate_existing=True)
                )
            ).scalar_one_or_none()
            if p is None or p.store_id != self.store_id:
                raise NotFoundError("Producto no encontrado", code="PRODUCT_NOT_FOUND")

            previous = p.stock
            p.stock = new_stock
            self.session.add(
                StockMovement(
                    store_id=self.store_id,
                    product_id=p.id,
                    quantity_change=new_stock - previous,
                    previous_stock=previous,
                    new_stock=new_stock,
                    reason=reason or "manual_update",
                    user_id=user_id,
                )
            )
            await self.session.flush()
            if new_stock < previous:
                alert = await collect_low_stock(self.session, self.store_id, [p])

            result = {
                "product_id": p.id,
                "previous_stock": previous,
                "new_stock": new_stock,
                "change": new_stock - previous,
                "stock_status": stock_status(new_stock),
            }

        await send_low_stock_alert(self.email, alert)
        return result

    async def get_movements(self, product_id: Optional[str] = None, limit: int = 50) -> List[Dict[str, Any]]:
        async with with_store(self.session, self.store_id):
            stmt = select(StockMovement).where(StockMovement.store_id == self.store_id)
            if product_id:
                stmt = stmt.where(StockMovement.product_id == product_id)
            rows = (
                await self.session.execute(stmt.order_by(StockMovement.created_at.desc()).limit(limit))
            ).scalars().all()
            return [
                {
                    "id": m.id,
                    "product_id": m.product_id,
                    "quantity_change": m.quantity_change,
                    "previous_stock": m.previous_stock,
                    "new_stock": m.new_stock,
                    "reason": m.reason,
                    "user_id": m.user_id,
                    "created_at": m.created_at.isoformat() if m.created_at else None,
                }
                for m in rows
            ]
