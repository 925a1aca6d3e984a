# storefront/api/routers/stores.py
from __future__ import annotations

from fastapi import APIRouter

from storefront.api.routers import stores_routes
from storefront.api.routers.stores_schemas import StoreCreateIn, StoreOut, StoreStatusIn

router = APIRouter(prefix="/api/stores", tags=["stores"])


def _register_all_routes() -> None:
    stores_routes.register(router)


_register_all_routes()

__all__ = ["router", "StoreCreateIn", "StoreOut", "StoreStatusIn"]
