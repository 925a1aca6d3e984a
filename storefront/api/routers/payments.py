# storefront/api/routers/payments.py
from __future__ import annotations

from fastapi import APIRouter

from storefront.api.routers import payments_routes
from storefront.api.routers.payments_schemas import PreferenceIn, PreferenceOut, WebhookIn

router = APIRouter(prefix="/api/payments", tags=["payments"])


def _register_all_routes() -> None:
    payments_routes.register(router)


_register_all_routes()

__all__ = ["router", "PreferenceIn", "PreferenceOut", "WebhookIn"]
