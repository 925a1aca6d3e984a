# storefront/api/store_resolver.py
"""
Per-request tenant resolution.

Order:
  1) ?storeId= / X-Store-Id            (lookup by id)
  2) ?store= / X-Store-Domain          (lookup by domain)
  3) subdomain of Host                 (tienda.example.com -> "tienda")
  4) authenticated user's store_id

No identifier -> no store context. There is never a "first store" fallback.
"""

from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.api.deps import get_optional_user, get_session, require_admin
from storefront.api.errors import BizError, ForbiddenError, NotFoundError
from storefront.core.config import get_settings
from storefront.models import Store, User
from storefront.models.enums import StoreStatus, UserRole
from storefront.services.store_service import StoreService

log = logging.getLogger("storefront.store_resolver")

_IPV4_PREFIX = re.compile(r"^\d+\.\d+\.\d+\.\d+")
_PLATFORM_HOSTS = ("localhost", "onrender.com", "vercel.app")


@dataclass(frozen=True)
class StoreInfo:
    id: str
    name: str
    domain: Optional[str]
    status: str
    plan: str
    type: Optional[str]
    license_key: Optional[str]

    @classmethod
    def from_model(cls, s: Store) -> "StoreInfo":
        return cls(
            id=s.id,
            name=s.name,
            domain=s.domain,
            status=s.status,
            plan=s.plan,
            type=s.type,
            license_key=s.license_key,
        )


class StoreCache:
    """Tiny in-process TTL cache: key -> (StoreInfo, expires_at)."""

    def __init__(self, ttl_seconds: float, clock: Callable[[], float] = time.monotonic) -> None:
        self.ttl = ttl_seconds
        self._clock = clock
        self._data: Dict[str, Tuple[StoreInfo, float]] = {}

    def get(self, key: str) -> Optional[StoreInfo]:
        entry = self._data.get(key)
        if entry is None:
            return None
        info, expires_at = entry
        if expires_at > self._clock():
            return info
        del self._data[key]
        return None

    def set(self, key: str, info: StoreInfo) -> None:
        self._data[key] = (info, self._clock() + self.ttl)

    def invalidate(self, store_id: Optional[str] = None) -> None:
        if store_id is None:
            self._data.clear()
            return
        for key in [k for k, (info, _) in self._data.items() if info.id == store_id]:
            del self._data[key]

    def __len__(self) -> int:
        return len(self._data)


store_cache = StoreCache(get_settings().STORE_CACHE_TTL_SECONDS)


def invalidate_store_cache(store_id: Optional[str] = None) -> None:
    store_cache.invalidate(store_id)


def extract_subdomain(host: str) -> Optional[str]:
    host = (host or "").split(":", 1)[0].strip().lower()
    if not host or any(p in host for p in _PLATFORM_HOSTS) or _IPV4_PREFIX.match(host):
        return None
    parts = host.split(".")
    if len(parts) >= 3:
        return parts[0]
    return None


def _check_usable(store: Store) -> None:
    if store.deleted_at is not None:
        raise NotFoundError("This store has been deleted", code="STORE_DELETED")
    if store.status == StoreStatus.SUSPENDED.value:
        raise ForbiddenError("This store is currently suspended", code="STORE_SUSPENDED")


async def _lookup(session: AsyncSession, *, store_id: str | None = None, domain: str | None = None) -> StoreInfo:
    key = f"store:id:{store_id}" if store_id else f"store:domain:{domain}"
    cached = store_cache.get(key)
    if cached is not None:
        return cached

    svc = StoreService(session)
    store = await svc.get_by_id(store_id) if store_id else await svc.get_by_domain(domain or "")
    if store is None:
        what = f"ID {store_id}" if store_id else f"domain: {domain}"
        log.info("store not found for %s", what)
        raise NotFoundError(f"No store found for {what}", code="STORE_NOT_FOUND")

    _check_usable(store)
    info = StoreInfo.from_model(store)
    store_cache.set(key, info)
    return info


async def resolve_store(
    request: Request,
    session: AsyncSession = Depends(get_session),
    user: Optional[User] = Depends(get_optional_user),
) -> Optional[StoreInfo]:
    q = request.query_params
    h = request.headers

    store_id = q.get("storeId") or h.get("x-store-id")
    if store_id:
        info = await _lookup(session, store_id=store_id)
        request.state.store = info
        return info

    domain = q.get("store") or h.get("x-store-domain") or extract_subdomain(h.get("host", ""))
    if domain:
        info = await _lookup(session, domain=domain.lower())
        request.state.store = info
        return info

    if user is not None and user.store_id:
        try:
            info = await _lookup(session, store_id=user.store_id)
        except NotFoundError:
            info = None
        if info is not None:
            request.state.store = info
            return info

    log.debug("no store identifier provided; proceeding without store context")
    request.state.store = None
    return None


async def require_store(store: Optional[StoreInfo] = Depends(resolve_store)) -> StoreInfo:
    if store is None:
        raise BizError(
            "Please specify a store using ?store=domain or X-Store-Domain header",
            code="STORE_REQUIRED",
            status=400,
        )
    return store


async def require_store_admin(
    store: StoreInfo = Depends(require_store),
    user: User = Depends(require_admin),
) -> StoreInfo:
    """
    Admin routes: the admin must belong to the resolved store.
    super_admin may act on any store.
    """
    if user.role != UserRole.SUPER_ADMIN.value and user.store_id != store.id:
        raise ForbiddenError("No tenés acceso a esta tienda", code="STORE_ACCESS_DENIED")
    return store
