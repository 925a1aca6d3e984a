# storefront/api/routers/reviews.py
from __future__ import annotations

from fastapi import APIRouter

from storefront.api.routers import reviews_routes
from storefront.api.routers.reviews_schemas import ReviewIn, ReviewModerateIn

router = APIRouter(prefix="/api", tags=["reviews"])


def _register_all_routes() -> None:
    reviews_routes.register(router)


_register_all_routes()

__all__ = ["router", "ReviewIn", "ReviewModerateIn"]
