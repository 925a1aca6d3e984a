# storefront/api/routers/stock.py
from __future__ import annotations

from fastapi import APIRouter

from storefront.api.routers import stock_routes
from storefront.api.routers.stock_schemas import StockUpdateIn, ThresholdIn

router = APIRouter(prefix="/api/admin/stock", tags=["stock"])


def _register_all_routes() -> None:
    stock_routes.register(router)


_register_all_routes()

__all__ = ["router", "StockUpdateIn", "ThresholdIn"]
