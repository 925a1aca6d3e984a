# storefront/api/routers/analytics.py
from __future__ import annotations

from fastapi import APIRouter

from storefront.api.routers import analytics_routes

router = APIRouter(prefix="/api/admin", tags=["analytics"])


def _register_all_routes() -> None:
    analytics_routes.register(router)


_register_all_routes()

__all__ = ["router"]
