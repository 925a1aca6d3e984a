# storefront/api/routers/catalog_routes_categories.py
from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.api.deps import get_session
from storefront.api.routers.catalog_schemas import CategoryIn, CategoryUpdateIn
from storefront.api.store_resolver import StoreInfo, require_store, require_store_admin
from storefront.services.category_service import CategoryService


def register(router: APIRouter) -> None:
    @router.get("/categories")
    async def list_categories(
        session: AsyncSession = Depends(get_session),
        store: StoreInfo = Depends(require_store),
    ):
        return await CategoryService(session, store.id).list_categories()

    @router.get("/admin/categories")
    async def list_all_categories(
        session: AsyncSession = Depends(get_session),
        store: StoreInfo = Depends(require_store_admin),
    ):
        return await CategoryService(session, store.id).list_categories(include_inactive=True)

    @router.post("/admin/categories", status_code=status.HTTP_201_CREATED)
    async def create_category(
        body: CategoryIn,
        session: AsyncSession = Depends(get_session),
        store: StoreInfo = Depends(require_store_admin),
    ):
        return await CategoryService(session, store.id).create_category(body.model_dump())

    @router.put("/admin/categories/{category_id}")
    async def update_category(
        category_id: str,
        body: CategoryUpdateIn,
        session: AsyncSession = Depends(get_session),
        store: StoreInfo = Depends(require_store_admin),
    ):
        return await CategoryService(session, store.id).update_category(
            category_id, body.model_dump(exclude_none=True)
        )

    @router.delete("/admin/categories/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
    async def delete_category(
        category_id: str,
        session: AsyncSession = Depends(get_session),
        store: StoreInfo = Depends(require_store_admin),
    ) -> None:
        await CategoryService(session, store.id).delete_category(category_id)
