# storefront/services/category_service.py
from __future__ import annotations

import re
import unicodedata
from typing import Any, Dict, List, Mapping, Optional

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.api.errors import ConflictError, NotFoundError, ValidationError
from storefront.db.rls import with_store
from storefront.models import Category


def slugify(value: str) -> str:
    """'Remeras & Tops' -> 'remeras-tops' (accents folded)."""
    folded = unicodedata.normalize("NFKD", value or "").encode("ascii", "ignore").decode("ascii")
    return re.sub(r"[^a-z0-9]+", "-", folded.lower()).strip("-")


def category_to_dict(c: Category) -> Dict[str, Any]:
    return {
        "id": c.id,
        "name": c.name,
        "slug": c.slug,
        "description": c.description,
        "image": c.image,
        "order_num": c.order_num,
        "is_active": c.is_active,
    }


_FIELDS = ("name", "description", "image", "order_num", "is_active")


class CategoryService:
    def __init__(self, session: AsyncSession, store_id: str) -> None:
        self.session = session
        self.store_id = store_id

    async def find(self, id_or_slug: str) -> Optional[Category]:
        """In-transaction lookup by id or slug."""
        return (
            await self.session.execute(
                select(Category)
                .where(
                    Category.store_id == self.store_id,
                    or_(Category.id == id_or_slug, Category.slug == id_or_slug),
                )
                .limit(1)
            )
        ).scalar_one_or_none()

    async def _slug_taken(self, slug: str, exclude_id: str | None = None) -> bool:
        stmt = select(Category.id).where(Category.store_id == self.store_id, Category.slug == slug)
        if exclude_id:
            stmt = stmt.where(Category.id != exclude_id)
        return (await self.session.execute(stmt.limit(1))).first() is not None

    async def list_categories(self, *, include_inactive: bool = False) -> List[Dict[str, Any]]:
        async with with_store(self.session, self.store_id):
            stmt = select(Category).where(Category.store_id == self.store_id)
            if not include_inactive:
                stmt = stmt.where(Category.is_active.is_(True))
            rows = (await self.session.execute(stmt.order_by(Category.order_num, Category.name))).scalars().all()
            return [category_to_dict(c) for c in rows]

    async def create_category(self, data: Mapping[str, Any]) -> Dict[str, Any]:
        name = str(data.get("name") or "").strip()
        if not name:
            raise ValidationError("El nombre es requerido")
        slug = slugify(str(data.get("slug") or name))
        if not slug:
            raise ValidationError("Slug inválido", code="INVALID_SLUG")

        async with with_store(self.session, self.store_id):
            if await self._slug_taken(slug):
                raise ConflictError(f"Ya existe una categoría con slug '{slug}'", code="CATEGORY_EXISTS")
            cat = Category(store_id=self.store_id, slug=slug, **{k: data[k] for k in _FIELDS if k in data})
            cat.name = name
            self.session.add(cat)
            await self.session.flush()
            return category_to_dict(cat)

    async def update_category(self, category_id: str, data: Mapping[str, Any]) -> Dict[str, Any]:
        async with with_store(self.session, self.store_id):
            cat = await self.find(category_id)
            if cat is None:
                raise NotFoundError("Categoría no encontrada", code="CATEGORY_NOT_FOUND")
            if data.get("slug"):
                slug = slugify(str(data["slug"]))
                if await self._slug_taken(slug, exclude_id=cat.id):
                    raise ConflictError(f"Ya existe una categoría con slug '{slug}'", code="CATEGORY_EXISTS")
                cat.slug = slug
            for k in _FIELDS:
                if k in data and data[k] is not None:
                    setattr(cat, k, data[k])
            await self.session.flush()
            return category_to_dict(cat)

    async def delete_category(self, category_id: str) -> None:
        async with with_store(self.session, self.store_id):
            cat = await self.find(category_id)
            if cat is None:
                raise NotFoundError("Categoría no encontrada", code="CATEGORY_NOT_FOUND")
            await self.session.delete(cat)
