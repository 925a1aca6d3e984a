# storefront/router_mount.py
from __future__ import annotations

from fastapi import FastAPI


def mount_routers(app: FastAPI) -> None:
    # ---------------------------------------------------------------------------
    # routers imports
    # ---------------------------------------------------------------------------
    from storefront.api.routers.analytics import router as analytics_router
    from storefront.api.routers.auth import router as auth_router
    from storefront.api.routers.catalog import router as catalog_router
    from storefront.api.routers.licenses import router as licenses_router
    from storefront.api.routers.orders import router as orders_router
    from storefront.api.routers.payments import router as payments_router
    from storefront.api.routers.reviews import router as reviews_router
    from storefront.api.routers.shipping import router as shipping_router
    from storefront.api.routers.stock import router as stock_router
    from storefront.api.routers.store_config import router as store_config_router
    from storefront.api.routers.stores import router as stores_router
    from storefront.api.routers.tryon import router as tryon_router
    from storefront.api.routers.wishlist import router as wishlist_router
    from storefront.obs.metrics import router as metrics_router

    # ===========================
    # tenants / accounts
    # ===========================
    app.include_router(stores_router)
    app.include_router(licenses_router)
    app.include_router(auth_router)
    app.include_router(store_config_router)

    # ===========================
    # catalog / stock
    # ===========================
    app.include_router(catalog_router)
    app.include_router(stock_router)

    # ===========================
    # checkout / fulfilment
    # ===========================
    app.include_router(orders_router)
    app.include_router(payments_router)
    app.include_router(shipping_router)

    # ===========================
    # shopper features
    # ===========================
    app.include_router(reviews_router)
    app.include_router(wishlist_router)
    app.include_router(tryon_router)

    # ===========================
    # back office / observability
    # ===========================
    app.include_router(analytics_router)
    app.include_router(metrics_router)
