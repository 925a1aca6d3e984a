# storefront/api/routers/tryon_routes.py
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.api.deps import get_session
from storefront.api.routers.tryon_schemas import TryOnIn, TryOnOut
from storefront.api.store_resolver import StoreInfo, require_store
from storefront.services.tryon_service import TryOnService


def register(router: APIRouter) -> None:
    @router.get("/status")
    async def tryon_status(
        session: AsyncSession = Depends(get_session),
        store: StoreInfo = Depends(require_store),
    ):
        return await TryOnService(session, store.id).status()

    @router.post("", response_model=TryOnOut)
    async def try_on(
        body: TryOnIn,
        session: AsyncSession = Depends(get_session),
        store: StoreInfo = Depends(require_store),
    ) -> TryOnOut:
        result = await TryOnService(session, store.id).virtual_try_on(
            body.model_image, body.garment_image, body.garment_type
        )
        return TryOnOut(**result)
