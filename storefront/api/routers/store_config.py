# storefront/api/routers/store_config.py
from __future__ import annotations

from fastapi import APIRouter

from storefront.api.routers import store_config_routes
from storefront.api.routers.store_config_schemas import ConfigBulkIn, ConfigEntryIn

router = APIRouter(prefix="/api", tags=["config"])


def _register_all_routes() -> None:
    store_config_routes.register(router)


_register_all_routes()

__all__ = ["router", "ConfigBulkIn", "ConfigEntryIn"]
