# storefront/services/product_service.py
from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.api.errors import NotFoundError, ValidationError
from storefront.db.rls import with_store
from storefront.models import Product, Store
from storefront.services.category_service import CategoryService
from storefront.services.config_service import ConfigService
from storefront.services.email_service import EmailService, get_email_service, send_best_effort
from storefront.services.license_service import LicenseService

log = logging.getLogger("storefront.products")

DEFAULT_LOW_STOCK_THRESHOLD = 5
LOW_STOCK_LABEL_AT = 5

_EDITABLE = (
    "name",
    "description",
    "price",
    "original_price",
    "transfer_price",
    "category_id",
    "subcategory",
    "images",
    "sizes",
    "colors",
    "stock",
    "is_new",
    "is_featured",
    "is_active",
    "order_num",
)


def stock_status(stock: int) -> str:
    if stock <= 0:
        return "Sin stock"
    if stock <= LOW_STOCK_LABEL_AT:
        return "Últimas unidades"
    return "En stock"


def sum_variants(variants: Optional[Mapping[str, Any]]) -> Optional[int]:
    if not variants:
        return None
    return sum(max(0, int(v or 0)) for v in variants.values())


def product_to_dict(p: Product) -> Dict[str, Any]:
    return {
        "id": p.id,
        "name": p.name,
        "description": p.description,
        "price": p.price,
        "original_price": p.original_price,
        "transfer_price": p.transfer_price,
        "category_id": p.category_id,
        "subcategory": p.subcategory,
        "images": list(p.images or []),
        "sizes": list(p.sizes or []),
        "colors": list(p.colors or []),
        "stock": p.stock,
        "variants_stock": dict(p.variants_stock) if p.variants_stock else None,
        "stock_status": stock_status(p.stock),
        "is_new": p.is_new,
        "is_featured": p.is_featured,
        "is_active": p.is_active,
        "views": p.views,
        "clicks": p.clicks,
        "order_num": p.order_num,
        "created_at": p.created_at.isoformat() if p.created_at else None,
    }


async def low_stock_threshold(session: AsyncSession, store_id: str) -> int:
    raw = await ConfigService(session, store_id).read("low_stock_threshold", DEFAULT_LOW_STOCK_THRESHOLD)
    try:
        return int(raw)
    except (TypeError, ValueError):
        return DEFAULT_LOW_STOCK_THRESHOLD


async def collect_low_stock(session: AsyncSession, store_id: str, products: List[Product]) -> Optional[Dict[str, Any]]:
    """Low-stock alert payload for the store owner, or None. Call inside the store transaction."""
    threshold = await low_stock_threshold(session, store_id)
    low = [p for p in products if p.stock <= threshold]
    if not low:
        return None
    store = await session.get(Store, store_id)
    if store is None or not store.owner_email:
        return None
    return {
        "owner_email": store.owner_email,
        "products": [{"name": p.name, "stock": p.stock} for p in low],
        "threshold": threshold,
    }


async def send_low_stock_alert(email: EmailService, alert: Optional[Dict[str, Any]]) -> None:
    # runs after the store transaction has closed
    if alert is None:
        return
    await send_best_effort(
        email.send_low_stock_alert(alert["owner_email"], alert["products"], alert["threshold"]),
        "low_stock_alert",
    )


class ProductService:
    def __init__(
        self,
        session: AsyncSession,
        store_id: str,
        *,
        email: EmailService | None = None,
    ) -> None:
        self.session = session
        self.store_id = store_id
        self.email = email or get_email_service()

    async def _get(self, product_id: str, *, for_update: bool = False) -> Product:
        p = await self.session.get(
            Product, product_id, with_for_update=for_update or None, populate_existing=for_update
        )
        if p is None or p.store_id != self.store_id:
            raise NotFoundError("Producto no encontrado", code="PRODUCT_NOT_FOUND")
        return p

    # ------------------------------------------------------------------ #
    # queries
    # ------------------------------------------------------------------ #

    async def list_products(
        self,
        *,
        category: Optional[str] = None,
        subcategory: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
        include_inactive: bool = False,
    ) -> Dict[str, Any]:
        """
        category matches a category id or slug. Ordered by order_num, newest first.
        """
        async with with_store(self.session, self.store_id):
            conds = [Product.store_id == self.store_id]
            if not include_inactive:
                conds.append(Product.is_active.is_(True))
            if category:
                cat = await CategoryService(self.session, self.store_id).find(category)
                if cat is None:
                    return {"products": [], "total": 0}
                conds.append(Product.category_id == cat.id)
            if subcategory:
                conds.append(Product.subcategory == subcategory)

            total = (await self.session.execute(select(func.count()).select_from(Product).where(*conds))).scalar_one()
            rows = (
                await self.session.execute(
                    select(Product)
                    .where(*conds)
                    .order_by(Product.order_num.asc(), Product.created_at.desc())
                    .limit(limit)
                    .offset(offset)
                )
            ).scalars().all()
            return {"products": [product_to_dict(p) for p in rows], "total": int(total)}

    async def get_product(self, product_id: str) -> Dict[str, Any]:
        async with with_store(self.session, self.store_id):
            return product_to_dict(await self._get(product_id))

    async def check_stock(self, product_id: str, quantity: int, color: Optional[str] = None) -> Dict[str, Any]:
        async with with_store(self.session, self.store_id):
            p = await self._get(product_id)
            available_stock = p.stock
            if color and p.variants_stock and color in p.variants_stock:
                available_stock = int(p.variants_stock.get(color) or 0)
            return {
                "product_id": p.id,
                "available": available_stock >= quantity,
                "stock": available_stock,
                "requested": quantity,
                "stock_status": stock_status(available_stock),
            }

    # ------------------------------------------------------------------ #
    # commands
    # ------------------------------------------------------------------ #

    async def create_product(self, data: Mapping[str, Any]) -> Dict[str, Any]:
        if not str(data.get("name") or "").strip():
            raise ValidationError("El nombre es requerido")
        if int(data.get("price") or 0) <= 0:
            raise ValidationError("El precio debe ser mayor a 0", code="INVALID_PRICE")

        async with with_store(self.session, self.store_id):
            await LicenseService(self.session).assert_can_create_product(self.store_id)

            p = Product(store_id=self.store_id, **{k: data[k] for k in _EDITABLE if data.get(k) is not None})
            variants = data.get("variants_stock")
            if variants:
                p.variants_stock = dict(variants)
                p.stock = int(sum_variants(variants) or 0)
            self.session.add(p)
            await self.session.flush()
            log.info("product created id=%s store=%s", p.id, self.store_id)
            return product_to_dict(p)

    async def update_product(self, product_id: str, data: Mapping[str, Any]) -> Dict[str, Any]:
        alert = None
        async with with_store(self.session, self.store_id):
            p = await self._get(product_id, for_update=True)
            for k in _EDITABLE:
                if k in data and data[k] is not None:
                    setattr(p, k, data[k])
            if data.get("variants_stock") is not None:
                variants = dict(data["variants_stock"])
                p.variants_stock = variants or None
                if variants:
                    p.stock = int(sum_variants(variants) or 0)
            await self.session.flush()
            if "stock" in data or "variants_stock" in data:
                alert = await collect_low_stock(self.session, self.store_id, [p])
            result = product_to_dict(p)

        await send_low_stock_alert(self.email, alert)
        return result

    async def delete_product(self, product_id: str) -> None:
        async with with_store(self.session, self.store_id):
            await self.session.delete(await self._get(product_id))

    async def track_view(self, product_id: str) -> None:
        await self._bump(product_id, Product.views)

    async def track_click(self, product_id: str) -> None:
        await self._bump(product_id, Product.clicks)

    async def _bump(self, product_id: str, column) -> None:
        async with with_store(self.session, self.store_id):
            res = await self.session.execute(
                update(Product)
                .where(Product.id == product_id, Product.store_id == self.store_id)
                .values({column: column + 1})
            )
            if res.rowcount == 0:
                raise NotFoundError("Producto no encontrado", code="PRODUCT_NOT_FOUND")
