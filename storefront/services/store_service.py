# storefront/services/store_service.py
from __future__ import annotations

import logging
import re
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.api.errors import ConflictError, NotFoundError, ValidationError
from storefront.core.config import get_settings
from storefront.db.base import utcnow
from storefront.models import License, Store
from storefront.models.enums import LicenseStatus, StoreStatus
from storefront.services.email_service import EmailService, get_email_service, send_best_effort
from storefront.utils.license_keys import generate_serial, plan_limits

log = logging.getLogger("storefront.stores")

_DOMAIN_RE = re.compile(r"^[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?$")


def normalize_domain(domain: str) -> str:
    d = (domain or "").strip().lower()
    if not _DOMAIN_RE.match(d):
        raise ValidationError("Dominio inválido: usá letras, números y guiones", code="INVALID_DOMAIN")
    return d


class StoreService:
    """
    Store (tenant) lookups and provisioning. Stores are not tenant rows
    themselves, so no RLS context is needed here.
    """

    def __init__(self, session: AsyncSession, *, email: EmailService | None = None) -> None:
        self.session = session
        self.email = email or get_email_service()

    async def get_by_id(self, store_id: str) -> Optional[Store]:
        return await self.session.get(Store, store_id)

    async def get_by_domain(self, domain: str) -> Optional[Store]:
        return (
            await self.session.execute(select(Store).where(Store.domain == domain.lower()).limit(1))
        ).scalar_one_or_none()

    async def create_store(
        self,
        *,
        name: str,
        domain: str,
        owner_email: str,
        owner_name: Optional[str] = None,
        plan: str = "trial",
    ) -> Store:
        """
        Create a store together with an active license for ``plan``, then
        send the owner the welcome and license emails.
        """
        domain = normalize_domain(domain)
        if await self.get_by_domain(domain) is not None:
            raise ConflictError(f"El dominio '{domain}' ya está en uso", code="DOMAIN_TAKEN")

        store = Store(
            name=name.strip(),
            domain=domain,
            owner_email=owner_email,
            owner_name=owner_name,
            plan=plan,
            status=StoreStatus.TRIAL.value if plan == "trial" else StoreStatus.ACTIVE.value,
        )
        self.session.add(store)
        await self.session.flush()

        limits = plan_limits(plan)
        lic = License(
            serial=generate_serial(),
            plan=plan,
            status=LicenseStatus.ACTIVE.value,
            store_id=store.id,
            max_products=limits.max_products,
            max_orders=limits.max_orders,
            owner_email=owner_email,
            owner_name=owner_name,
            activated_at=utcnow(),
        )
        self.session.add(lic)
        store.license_key = lic.serial
        await self.session.commit()
        log.info("store created id=%s domain=%s plan=%s", store.id, domain, plan)

        dashboard_url = f"{get_settings().STORE_URL}/#/admin?store={domain}"
        await send_best_effort(self.email.send_store_created(owner_email, store.name, dashboard_url), "store_created")
        await send_best_effort(self.email.send_activation_license(owner_email, lic.serial, plan), "activation_license")
        return store

    async def set_status(self, store_id: str, status: str) -> Store:
        if status not in {s.value for s in StoreStatus}:
            raise ValidationError(f"Estado inválido: {status}", code="INVALID_STATUS")
        store = await self.get_by_id(store_id)
        if store is None or store.deleted_at is not None:
            raise NotFoundError("Store not found", code="STORE_NOT_FOUND")
        store.status = status
        await self.session.commit()
        return store

    async def soft_delete(self, store_id: str) -> None:
        store = await self.get_by_id(store_id)
        if store is None:
            raise NotFoundError("Store not found", code="STORE_NOT_FOUND")
        store.deleted_at = utcnow()
        await self.session.commit()
