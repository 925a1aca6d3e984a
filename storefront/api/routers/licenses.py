# storefront/api/routers/licenses.py
from __future__ import annotations

from fastapi import APIRouter

from storefront.api.routers import licenses_routes
from storefront.api.routers.licenses_schemas import (
    LicenseActivateIn,
    LicenseGenerateIn,
    LicenseOut,
    LicenseUsageOut,
)

router = APIRouter(prefix="/api", tags=["licenses"])


def _register_all_routes() -> None:
    licenses_routes.register(router)


_register_all_routes()

__all__ = ["router", "LicenseActivateIn", "LicenseGenerateIn", "LicenseOut", "LicenseUsageOut"]
