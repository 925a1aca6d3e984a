# storefront/api/routers/wishlist.py
from __future__ import annotations

from fastapi import APIRouter

from storefront.api.routers import wishlist_routes

router = APIRouter(prefix="/api/wishlist", tags=["wishlist"])


def _register_all_routes() -> None:
    wishlist_routes.register(router)


_register_all_routes()

__all__ = ["router"]
