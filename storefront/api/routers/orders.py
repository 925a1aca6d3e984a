# storefront/api/routers/orders.py
from __future__ import annotations

from fastapi import APIRouter

from storefront.api.routers import orders_routes_admin, orders_routes_cart, orders_routes_checkout
from storefront.api.routers.orders_schemas import (
    CartSaveIn,
    OrderCreatedOut,
    OrderCreateIn,
    OrderItemIn,
    OrderStatusIn,
    ReceiptIn,
    VerifyReceiptIn,
)

router = APIRouter(prefix="/api", tags=["orders"])


def _register_all_routes() -> None:
    orders_routes_checkout.register(router)
    orders_routes_admin.register(router)
    orders_routes_cart.register(router)


_register_all_routes()

__all__ = [
    "router",
    "CartSaveIn",
    "OrderCreateIn",
    "OrderCreatedOut",
    "OrderItemIn",
    "OrderStatusIn",
    "ReceiptIn",
    "VerifyReceiptIn",
]
