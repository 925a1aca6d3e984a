# storefront/api/routers/tryon.py
from __future__ import annotations

from fastapi import APIRouter

from storefront.api.routers import tryon_routes
from storefront.api.routers.tryon_schemas import TryOnIn, TryOnOut

router = APIRouter(prefix="/api/try-on", tags=["try-on"])


def _register_all_routes() -> None:
    tryon_routes.register(router)


_register_all_routes()

__all__ = ["router", "TryOnIn", "TryOnOut"]
