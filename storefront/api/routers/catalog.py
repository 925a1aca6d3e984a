# storefront/api/routers/catalog.py
from __future__ import annotations

from fastapi import APIRouter

from storefront.api.routers import catalog_routes_categories, catalog_routes_products
from storefront.api.routers.catalog_schemas import (
    CategoryIn,
    CategoryUpdateIn,
    CheckStockIn,
    ProductIn,
    ProductUpdateIn,
)

router = APIRouter(prefix="/api", tags=["catalog"])


def _register_all_routes() -> None:
    catalog_routes_categories.register(router)
    catalog_routes_products.register(router)


_register_all_routes()

__all__ = [
    "router",
    "CategoryIn",
    "CategoryUpdateIn",
    "CheckStockIn",
    "ProductIn",
    "ProductUpdateIn",
]
