# storefront/services/license_service.py
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.api.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from storefront.db.base import utcnow
from storefront.db.rls import with_store
from storefront.models import License, Order, Product, Store
from storefront.models.enums import LicenseStatus
from storefront.utils.license_keys import (
    UNLIMITED,
    expiration_date,
    generate_serial,
    plan_limits,
    validate_serial,
)

log = logging.getLogger("storefront.license")


def _aware(dt: Optional[datetime]) -> Optional[datetime]:
    # sqlite hands back naive datetimes
    if dt is not None and dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def check_license_status(lic: Optional[License], *, now: Optional[datetime] = None) -> Dict[str, Any]:
    """
    -> {"valid": bool, "status": str, "reason": str | None}
    """
    if lic is None:
        return {"valid": False, "status": "missing", "reason": "NO_LICENSE"}
    if lic.status == LicenseStatus.REVOKED.value:
        return {"valid": False, "status": lic.status, "reason": "LICENSE_REVOKED"}
    if lic.status == LicenseStatus.SUSPENDED.value:
        return {"valid": False, "status": lic.status, "reason": "LICENSE_SUSPENDED"}
    expires = _aware(lic.expires_at)
    if expires is not None and expires <= (now or datetime.now(timezone.utc)):
        return {"valid": False, "status": LicenseStatus.EXPIRED.value, "reason": "LICENSE_EXPIRED"}
    return {"valid": True, "status": lic.status, "reason": None}


def _start_of_month(now: datetime) -> datetime:
    return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


class LicenseService:
    """
    License lookups, usage counters and plan enforcement.

    The ``_``-free query helpers run inside whatever transaction the caller
    holds; only the route-facing wrappers open a store transaction.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_by_store(self, store_id: str) -> Optional[License]:
        return (
            await self.session.execute(select(License).where(License.store_id == store_id).limit(1))
        ).scalar_one_or_none()

    async def get_license_usage(self, store_id: str) -> Optional[Dict[str, Any]]:
        lic = await self.get_by_store(store_id)
        if lic is None:
            log.warning("no license found for store %s", store_id)
            return None

        product_count = int(
            (
                await self.session.execute(
                    select(func.count()).select_from(Product).where(Product.store_id == store_id)
                )
            ).scalar_one()
        )
        order_count = int(
            (
                await self.session.execute(
                    select(func.count())
                    .select_from(Order)
                    .where(Order.store_id == store_id, Order.created_at >= _start_of_month(utcnow()))
                )
            ).scalar_one()
        )

        max_products = lic.max_products or UNLIMITED
        max_orders = lic.max_orders or UNLIMITED
        return {
            "plan": lic.plan,
            "product_count": product_count,
            "max_products": max_products,
            "order_count": order_count,
            "max_orders": max_orders,
            "can_create_product": product_count < max_products,
            "can_create_order": order_count < max_orders,
            "product_percentage": min(100, round(product_count / max_products * 100)),
            "order_percentage": min(100, round(order_count / max_orders * 100)),
        }

    async def assert_can_create_product(self, store_id: str) -> Dict[str, Any]:
        usage = await self.get_license_usage(store_id)
        if usage is None:
            raise ForbiddenError("No valid license found", code="NO_LICENSE")
        if not usage["can_create_product"]:
            raise ForbiddenError(
                f"Has alcanzado el límite de {usage['max_products']} productos para tu plan.",
                code="PRODUCT_LIMIT_EXCEEDED",
                details={"current_count": usage["product_count"], "max_allowed": usage["max_products"]},
            )
        return usage

    async def assert_can_create_order(self, store_id: str) -> Dict[str, Any]:
        usage = await self.get_license_usage(store_id)
        if usage is None:
            raise ForbiddenError("No valid license found", code="NO_LICENSE")
        if not usage["can_create_order"]:
            raise ForbiddenError(
                f"La tienda alcanzó el límite de {usage['max_orders']} pedidos mensuales.",
                code="ORDER_LIMIT_EXCEEDED",
                details={"current_count": usage["order_count"], "max_allowed": usage["max_orders"]},
            )
        return usage

    # ---- route-facing ------------------------------------------------------

    async def usage(self, store_id: str) -> Optional[Dict[str, Any]]:
        async with with_store(self.session, store_id):
            return await self.get_license_usage(store_id)

    async def status(self, store_id: str) -> Dict[str, Any]:
        async with with_store(self.session, store_id):
            lic = await self.get_by_store(store_id)
            out = check_license_status(lic)
            if lic is not None:
                out.update(
                    serial=lic.serial,
                    plan=lic.plan,
                    expires_at=lic.expires_at.isoformat() if lic.expires_at else None,
                )
            return out

    async def generate(
        self,
        *,
        plan: str,
        duration: str = "lifetime",
        owner_email: Optional[str] = None,
        owner_name: Optional[str] = None,
    ) -> License:
        limits = plan_limits(plan)
        lic = License(
            serial=generate_serial(),
            plan=plan,
            status=LicenseStatus.GENERATED.value,
            max_products=limits.max_products,
            max_orders=limits.max_orders,
            owner_email=owner_email,
            owner_name=owner_name,
            expires_at=expiration_date(duration),
        )
        self.session.add(lic)
        await self.session.commit()
        log.info("license generated serial=%s plan=%s", lic.serial, plan)
        return lic

    async def activate(self, *, serial: str, store_id: str) -> License:
        """
        Bind a generated license to a store; the store plan follows the license.
        """
        serial = (serial or "").strip().upper()
        if not validate_serial(serial):
            raise ValidationError("Formato de licencia inválido", code="INVALID_SERIAL")

        async with with_store(self.session, store_id):
            lic = await self.session.get(License, serial)
            if lic is None:
                raise NotFoundError("Licencia no encontrada", code="LICENSE_NOT_FOUND")
            if lic.store_id and lic.store_id != store_id:
                raise ConflictError("La licencia ya está en uso", code="LICENSE_IN_USE")
            state = check_license_status(lic)
            if not state["valid"]:
                raise ForbiddenError("La licencia no es válida", code=str(state["reason"]))

            current = await self.get_by_store(store_id)
            if current is not None and current.serial != serial:
                current.store_id = None

            lic.store_id = store_id
            lic.status = LicenseStatus.ACTIVE.value
            lic.activated_at = utcnow()

            store = await self.session.get(Store, store_id)
            if store is not None:
                store.plan = lic.plan
                store.license_key = serial

        log.info("license %s activated for store %s", serial, store_id)
        return lic
