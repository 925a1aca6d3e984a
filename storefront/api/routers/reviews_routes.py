# storefront/api/routers/reviews_routes.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.api.deps import get_session
from storefront.api.routers.reviews_schemas import ReviewIn, ReviewModerateIn
from storefront.api.store_resolver import StoreInfo, require_store, require_store_admin
from storefront.services.review_service import ReviewService


def register(router: APIRouter) -> None:
    @router.get("/reviews/{product_id}")
    async def product_reviews(
        product_id: str,
        session: AsyncSession = Depends(get_session),
        store: StoreInfo = Depends(require_store),
    ):
        return await ReviewService(session, store.id).list_product_reviews(product_id)

    @router.post("/reviews", status_code=status.HTTP_201_CREATED)
    async def create_review(
        body: ReviewIn,
        session: AsyncSession = Depends(get_session),
        store: StoreInfo = Depends(require_store),
    ):
        result = await ReviewService(session, store.id).create_review(body.model_dump())
        return {"success": True, "message": "Gracias por tu opinión. Será publicada tras ser revisada.", **result}

    @router.get("/admin/reviews")
    async def list_reviews(
        approved: Optional[bool] = Query(None),
        limit: int = Query(50, ge=1, le=500),
        offset: int = Query(0, ge=0),
        session: AsyncSession = Depends(get_session),
        store: StoreInfo = Depends(require_store_admin),
    ):
        reviews = await ReviewService(session, store.id).list_reviews(approved=approved, limit=limit, offset=offset)
        return {"reviews": reviews}

    @router.put("/admin/reviews/{review_id}")
    async def moderate_review(
        review_id: str,
        body: ReviewModerateIn,
        session: AsyncSession = Depends(get_session),
        store: StoreInfo = Depends(require_store_admin),
    ):
        return await ReviewService(session, store.id).moderate_review(review_id, body.approved)

    @router.delete("/admin/reviews/{review_id}", status_code=status.HTTP_204_NO_CONTENT)
    async def delete_review(
        review_id: str,
        session: AsyncSession = Depends(get_session),
        store: StoreInfo = Depends(require_store_admin),
    ) -> None:
        await ReviewService(session, store.id).delete_review(review_id)
