# storefront/api/routers/catalog_routes_products.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.api.deps import get_session
from storefront.api.routers.catalog_schemas import CheckStockIn, ProductIn, ProductUpdateIn
from storefront.api.store_resolver import StoreInfo, require_store, require_store_admin
from storefront.services.product_service import ProductService


def register(router: APIRouter) -> None:
    # ---- storefront ----
    @router.get("/products")
    async def list_products(
        category: Optional[str] = Query(None, description="category id or slug"),
        subcategory: Optional[str] = Query(None),
        limit: int = Query(100, ge=1, le=500),
        offset: int = Query(0, ge=0),
        session: AsyncSession = Depends(get_session),
        store: StoreInfo = Depends(require_store),
    ):
        return await ProductService(session, store.id).list_products(
            category=category, subcategory=subcategory, limit=limit, offset=offset
        )

    @router.post("/products/check-stock")
    async def check_stock(
        body: CheckStockIn,
        session: AsyncSession = Depends(get_session),
        store: StoreInfo = Depends(require_store),
    ):
        return await ProductService(session, store.id).check_stock(body.product_id, body.quantity, body.color)

    @router.get("/products/{product_id}")
    async def get_product(
        product_id: str,
        session: AsyncSession = Depends(get_session),
        store: StoreInfo = Depends(require_store),
    ):
        return await ProductService(session, store.id).get_product(product_id)

    @router.post("/products/{product_id}/view")
    async def track_view(
        product_id: str,
        session: AsyncSession = Depends(get_session),
        store: StoreInfo = Depends(require_store),
    ):
        await ProductService(session, store.id).track_view(product_id)
        return {"success": True}

    @router.post("/products/{product_id}/click")
    async def track_click(
        product_id: str,
        session: AsyncSession = Depends(get_session),
        store: StoreInfo = Depends(require_store),
    ):
        await ProductService(session, store.id).track_click(product_id)
        return {"success": True}

    # ---- back office ----
    @router.get("/admin/products")
    async def list_all_products(
        limit: int = Query(100, ge=1, le=500),
        offset: int = Query(0, ge=0),
        session: AsyncSession = Depends(get_session),
        store: StoreInfo = Depends(require_store_admin),
    ):
        return await ProductService(session, store.id).list_products(
            limit=limit, offset=offset, include_inactive=True
        )

    @router.post("/admin/products", status_code=status.HTTP_201_CREATED)
    async def create_product(
        body: ProductIn,
        session: AsyncSession = Depends(get_session),
        store: StoreInfo = Depends(require_store_admin),
    ):
        return await ProductService(session, store.id).create_product(body.model_dump(exclude_none=True))

    @router.put("/admin/products/{product_id}")
    async def update_product(
        product_id: str,
        body: ProductUpdateIn,
        session: AsyncSession = Depends(get_session),
        store: StoreInfo = Depends(require_store_admin),
    ):
        return await ProductService(session, store.id).update_product(product_id, body.model_dump(exclude_unset=True))

    @router.delete("/admin/products/{product_id}", status_code=status.HTTP_204_NO_CONTENT)
    async def delete_product(
        product_id: str,
        session: AsyncSession = Depends(get_session),
        store: StoreInfo = Depends(require_store_admin),
    ) -> None:
        await ProductService(session, store.id).delete_product(product_id)
