# storefront/services/review_service.py
from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional

from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.api.errors import ConflictError, NotFoundError, ValidationError
from storefront.db.rls import with_store
from storefront.models import Order, OrderItem, Product, Review
from storefront.models.enums import OrderStatus

# orders that count as a purchase for the "verified" badge
PURCHASED_STATUSES = (OrderStatus.PAID.value, OrderStatus.SHIPPED.value, OrderStatus.DELIVERED.value)


def review_to_dict(r: Review, product_name: Optional[str] = None) -> Dict[str, Any]:
    d = {
        "id": r.id,
        "product_id": r.product_id,
        "customer_name": r.customer_name,
        "rating": r.rating,
        "title": r.title,
        "comment": r.comment,
        "verified_purchase": r.verified_purchase,
        "approved": r.approved,
        "created_at": r.created_at.isoformat() if r.created_at else None,
    }
    if product_name is not None:
        d["product_name"] = product_name
    return d


class ReviewService:
    def __init__(self, session: AsyncSession, store_id: str) -> None:
        self.session = session
        self.store_id = store_id

    async def list_product_reviews(self, product_id: str) -> Dict[str, Any]:
        """Approved reviews plus rating stats."""
        async with with_store(self.session, self.store_id):
            approved = (Review.store_id == self.store_id, Review.product_id == product_id, Review.approved.is_(True))
            rows = (
                await self.session.execute(select(Review).where(*approved).order_by(Review.created_at.desc()))
            ).scalars().all()

            buckets = [func.sum(case((Review.rating == n, 1), else_=0)) for n in (5, 4, 3, 2, 1)]
            stats = (
                await self.session.execute(select(func.count(), func.avg(Review.rating), *buckets).where(*approved))
            ).one()

            return {
                "reviews": [review_to_dict(r) for r in rows],
                "stats": {
                    "total": int(stats[0] or 0),
                    "average": round(float(stats[1] or 0), 1),
                    "distribution": {n: int(stats[i + 2] or 0) for i, n in enumerate((5, 4, 3, 2, 1))},
                },
            }

    async def create_review(self, data: Mapping[str, Any]) -> Dict[str, Any]:
        product_id = data.get("product_id")
        name = str(data.get("customer_name") or "").strip()
        email = str(data.get("customer_email") or "").strip().lower()
        try:
            rating = int(data.get("rating") or 0)
        except (TypeError, ValueError):
            rating = 0
        if not product_id or not name or not email:
            raise ValidationError("Datos incompletos", code="VALIDATION_ERROR")
        if rating < 1 or rating > 5:
            raise ValidationError("Rating debe ser entre 1 y 5", code="INVALID_RATING")

        async with with_store(self.session, self.store_id):
            product = (
                await self.session.execute(
                    select(Product.id).where(Product.id == product_id, Product.store_id == self.store_id)
                )
            ).first()
            if product is None:
                raise NotFoundError("Producto no encontrado", code="PRODUCT_NOT_FOUND")

            dup = (
                await self.session.execute(
                    select(Review.id).where(Review.product_id == product_id, Review.customer_email == email).limit(1)
                )
            ).first()
            if dup is not None:
                raise ConflictError("Ya dejaste una opinión para este producto", code="ALREADY_REVIEWED")

            bought = (
                await self.session.execute(
                    select(Order.id)
                    .join(OrderItem, OrderItem.order_id == Order.id)
                    .where(
                        Order.store_id == self.store_id,
                        func.lower(Order.customer_email) == email,
                        OrderItem.product_id == product_id,
                        Order.status.in_(PURCHASED_STATUSES),
                    )
                    .limit(1)
                )
            ).first()

            review = Review(
                store_id=self.store_id,
                product_id=product_id,
                customer_name=name,
                customer_email=email,
                rating=rating,
                title=data.get("title"),
                comment=data.get("comment"),
                verified_purchase=bought is not None,
                approved=False,
            )
            self.session.add(review)
            await self.session.flush()
            return {"id": review.id, "verified_purchase": review.verified_purchase}

    # ---- admin ------------------------------------------------------------

    async def list_reviews(
        self, *, approved: Optional[bool] = None, limit: int = 50, offset: int = 0
    ) -> List[Dict[str, Any]]:
        async with with_store(self.session, self.store_id):
            stmt = (
                select(Review, Product.name)
                .outerjoin(Product, Product.id == Review.product_id)
                .where(Review.store_id == self.store_id)
            )
            if approved is not None:
                stmt = stmt.where(Review.approved.is_(approved))
            rows = (
                await self.session.execute(stmt.order_by(Review.created_at.desc()).limit(limit).offset(offset))
            ).all()
            out = []
            for r, product_name in rows:
                d = review_to_dict(r, product_name or "")
                d["customer_email"] = r.customer_email
                out.append(d)
            return out

    async def _get(self, review_id: str) -> Review:
        r = (
            await self.session.execute(
                select(Review).where(Review.id == review_id, Review.store_id == self.store_id)
            )
        ).scalar_one_or_none()
        if r is None:
            raise NotFoundError("Opinión no encontrada", code="REVIEW_NOT_FOUND")
        return r

    async def moderate_review(self, review_id: str, approved: bool) -> Dict[str, Any]:
        async with with_store(self.session, self.store_id):
            r = await self._get(review_id)
            r.approved = bool(approved)
            await self.session.flush()
            return review_to_dict(r)

    async def delete_review(self, review_id: str) -> None:
        async with with_store(self.session, self.store_id):
            await self.session.delete(await self._get(review_id))
