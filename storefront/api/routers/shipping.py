# storefront/api/routers/shipping.py
from __future__ import annotations

from fastapi import APIRouter

from storefront.api.routers import shipping_routes_admin, shipping_routes_public
from storefront.api.routers.shipping_schemas import (
    PostalCodeOut,
    QuoteIn,
    QuoteOut,
    ShipmentCreateIn,
    ShipmentOut,
    TrackingOut,
)

router = APIRouter(prefix="/api", tags=["shipping"])


def _register_all_routes() -> None:
    shipping_routes_public.register(router)
    shipping_routes_admin.register(router)


_register_all_routes()

__all__ = [
    "router",
    "QuoteIn",
    "QuoteOut",
    "PostalCodeOut",
    "ShipmentCreateIn",
    "ShipmentOut",
    "TrackingOut",
]
