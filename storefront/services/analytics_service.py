# storefront/services/analytics_service.py
from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.api.errors import ValidationError
from storefront.db.base import utcnow
from storefront.db.rls import with_store
from storefront.models import Order, OrderItem, Product
from storefront.models.enums import OrderStatus
from storefront.services.order_service import order_to_dict

SUMMARY_PERIODS = ("today", "week", "month", "year")


def _period_bounds(period: str, now: datetime):
    """-> (start, previous_start, previous_end)"""
    if period == "today":
        start = now.replace(hour=0, minute=0, second=0, microsecond=0)
        return start, start - timedelta(days=1), start
    if period == "week":
        start = now - timedelta(days=7)
        return start, start - timedelta(days=7), start
    if period == "month":
        start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
        prev = (start - timedelta(days=1)).replace(day=1)
        return start, prev, start
    if period == "year":
        start = now.replace(month=1, day=1, hour=0, minute=0, second=0, microsecond=0)
        return start, start.replace(year=start.year - 1), start
    raise ValidationError(f"Periodo inválido: {period}", code="INVALID_PERIOD")


class AnalyticsService:
    """Admin dashboard numbers. Cancelled orders never count as sales."""

    def __init__(self, session: AsyncSession, store_id: str) -> None:
        self.session = session
        self.store_id = store_id

    def _sales(self, since: datetime, until: Optional[datetime] = None):
        conds = [
            Order.store_id == self.store_id,
            Order.created_at >= since,
            Order.status != OrderStatus.CANCELLED.value,
        ]
        if until is not None:
            conds.append(Order.created_at < until)
        return conds

    async def get_dashboard(self, days: int = 30) -> Dict[str, Any]:
        if days < 1:
            raise ValidationError("days debe ser mayor a 0", code="INVALID_RANGE")
        since = utcnow() - timedelta(days=days)

        async with with_store(self.session, self.store_id):
            sales = self._sales(since)
            revenue, orders_count, customers = (
                await self.session.execute(
                    select(
                        func.coalesce(func.sum(Order.total), 0),
                        func.count(Order.id),
                        func.count(func.distinct(Order.customer_email)),
                    ).where(*sales)
                )
            ).one()
            revenue, orders_count = int(revenue), int(orders_count)

            products_count, views = (
                await self.session.execute(
                    select(func.count(Product.id), func.coalesce(func.sum(Product.views), 0)).where(
                        Product.store_id == self.store_id
                    )
                )
            ).one()
            views = int(views)

            day = func.date(Order.created_at)
            by_day = (
                await self.session.execute(
                    select(day, func.coalesce(func.sum(Order.total), 0), func.count(Order.id))
                    .where(*sales)
                    .group_by(day)
                    .order_by(day)
                )
            ).all()

            qty = func.sum(OrderItem.quantity)
            top = (
                await self.session.execute(
                    select(
                        OrderItem.product_id,
                        OrderItem.product_name,
                        qty,
                        func.sum(OrderItem.price * OrderItem.quantity),
                    )
                    .join(Order, Order.id == OrderItem.order_id)
                    .where(*sales)
                    .group_by(OrderItem.product_id, OrderItem.product_name)
                    .order_by(qty.desc())
                    .limit(10)
                )
            ).all()

            by_status = (
                await self.session.execute(
                    select(Order.status, func.count(Order.id))
                    .where(Order.store_id == self.store_id, Order.created_at >= since)
                    .group_by(Order.status)
                )
            ).all()

            recent = (
                await self.session.execute(
                    select(Order).where(Order.store_id == self.store_id).order_by(Order.created_at.desc()).limit(5)
                )
            ).scalars().all()

            return {
                "days": days,
                "total_revenue": revenue,
                "total_orders": orders_count,
                "average_order_value": round(revenue / orders_count) if orders_count else 0,
                "total_products": int(products_count),
                "total_customers": int(customers),
                "conversion_rate": round(orders_count / views * 100, 2) if views else 0.0,
                "revenue_by_day": [
                    {"date": str(d), "revenue": int(rev), "orders": int(n)} for d, rev, n in by_day
                ],
                "top_products": [
                    {"id": pid, "name": name, "quantity": int(q), "revenue": int(rev or 0)}
                    for pid, name, q, rev in top
                ],
                "orders_by_status": [{"status": s or "unknown", "count": int(n)} for s, n in by_status],
                "recent_orders": [order_to_dict(o) for o in recent],
            }

    async def get_sales_summary(self, period: str = "month") -> Dict[str, Any]:
        start, prev_start, prev_end = _period_bounds(period, utcnow())

        async with with_store(self.session, self.store_id):
            revenue, orders_count = (
                await self.session.execute(
                    select(func.coalesce(func.sum(Order.total), 0), func.count(Order.id)).where(*self._sales(start))
                )
            ).one()
            previous = (
                await self.session.execute(
                    select(func.coalesce(func.sum(Order.total), 0)).where(*self._sales(prev_start, prev_end))
                )
            ).scalar_one()

        revenue, previous = int(revenue), int(previous)
        growth = (revenue - previous) / previous * 100 if previous else 0.0
        return {"period": period, "revenue": revenue, "orders": int(orders_count), "growth": round(growth, 1)}
