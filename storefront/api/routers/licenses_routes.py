# storefront/api/routers/licenses_routes.py
from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.api.deps import get_session, require_super_admin
from storefront.api.errors import ForbiddenError, ValidationError
from storefront.api.routers.licenses_schemas import (
    LicenseActivateIn,
    LicenseGenerateIn,
    LicenseOut,
    LicenseUsageOut,
)
from storefront.api.store_resolver import StoreInfo, invalidate_store_cache, require_store, require_store_admin
from storefront.models import License
from storefront.services.license_service import LicenseService
from storefront.utils.license_keys import EXPIRATION_DURATIONS, PLAN_LIMITS


def _out(lic: License) -> LicenseOut:
    return LicenseOut(
        serial=lic.serial,
        plan=lic.plan,
        status=lic.status,
        store_id=lic.store_id,
        max_products=lic.max_products,
        max_orders=lic.max_orders,
        expires_at=lic.expires_at.isoformat() if lic.expires_at else None,
    )


def register(router: APIRouter) -> None:
    @router.get("/license/usage", response_model=LicenseUsageOut)
    async def license_usage(
        session: AsyncSession = Depends(get_session),
        store: StoreInfo = Depends(require_store_admin),
    ) -> LicenseUsageOut:
        usage = await LicenseService(session).usage(store.id)
        if usage is None:
            raise ForbiddenError("No valid license found", code="NO_LICENSE")
        return LicenseUsageOut(**usage)

    @router.get("/license/status")
    async def license_status(
        session: AsyncSession = Depends(get_session),
        store: StoreInfo = Depends(require_store),
    ):
        return await LicenseService(session).status(store.id)

    @router.post("/license/activate", response_model=LicenseOut)
    async def activate_license(
        body: LicenseActivateIn,
        session: AsyncSession = Depends(get_session),
        store: StoreInfo = Depends(require_store_admin),
    ) -> LicenseOut:
        lic = await LicenseService(session).activate(serial=body.serial, store_id=store.id)
        invalidate_store_cache(store.id)
        return _out(lic)

    @router.post(
        "/licenses",
        response_model=LicenseOut,
        status_code=status.HTTP_201_CREATED,
        dependencies=[Depends(require_super_admin)],
    )
    async def generate_license(
        body: LicenseGenerateIn,
        session: AsyncSession = Depends(get_session),
    ) -> LicenseOut:
        if body.plan not in PLAN_LIMITS:
            raise ValidationError(f"Plan desconocido: {body.plan}", code="INVALID_PLAN")
        if body.duration not in EXPIRATION_DURATIONS:
            raise ValidationError(f"Duración inválida: {body.duration}", code="INVALID_DURATION")
        lic = await LicenseService(session).generate(
            plan=body.plan,
            duration=body.duration,
            owner_email=body.owner_email,
            owner_name=body.owner_name,
        )
        return _out(lic)
