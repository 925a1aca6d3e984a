# storefront/api/routers/stores_routes.py
from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.api.deps import get_session, require_super_admin
from storefront.api.routers.stores_schemas import StoreCreateIn, StoreOut, StoreStatusIn
from storefront.api.store_resolver import StoreInfo, invalidate_store_cache, require_store
from storefront.models import Store
from storefront.services.store_service import StoreService


def _out(s: Store | StoreInfo) -> StoreOut:
    return StoreOut(id=s.id, name=s.name, domain=s.domain, status=s.status, plan=s.plan, type=s.type)


def register(router: APIRouter) -> None:
    @router.get("/current", response_model=StoreOut)
    async def current_store(store: StoreInfo = Depends(require_store)) -> StoreOut:
        return _out(store)

    @router.post(
        "",
        response_model=StoreOut,
        status_code=status.HTTP_201_CREATED,
        dependencies=[Depends(require_super_admin)],
    )
    async def create_store(body: StoreCreateIn, session: AsyncSession = Depends(get_session)) -> StoreOut:
        store = await StoreService(session).create_store(
            name=body.name,
            domain=body.domain,
            owner_email=body.owner_email,
            owner_name=body.owner_name,
            plan=body.plan,
        )
        return _out(store)

    @router.patch(
        "/{store_id}/status",
        response_model=StoreOut,
        dependencies=[Depends(require_super_admin)],
    )
    async def set_store_status(
        store_id: str,
        body: StoreStatusIn,
        session: AsyncSession = Depends(get_session),
    ) -> StoreOut:
        store = await StoreService(session).set_status(store_id, body.status)
        invalidate_store_cache(store_id)
        return _out(store)

    @router.delete(
        "/{store_id}",
        status_code=status.HTTP_204_NO_CONTENT,
        dependencies=[Depends(require_super_admin)],
    )
    async def delete_store(store_id: str, session: AsyncSession = Depends(get_session)) -> None:
        await StoreService(session).soft_delete(store_id)
        invalidate_store_cache(store_id)
