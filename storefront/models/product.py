# storefront/models/product.py
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from storefront.db.base import Base, JsonType, new_id, utcnow


class Product(Base):
    """
    Catalog product. Prices are integer centavos.

    variants_stock maps color -> qty; when present, stock is their sum.
    """

    __tablename__ = "products"
    __table_args__ = (Index("ix_products_store_category", "store_id", "category_id"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    store_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("stores.id", ondelete="CASCADE"), nullable=False, index=True
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    price: Mapped[int] = mapped_column(Integer, nullable=False)
    original_price: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    transfer_price: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    category_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("categories.id", ondelete="SET NULL"), nullable=True
    )
    subcategory: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)

    images: Mapped[List[str]] = mapped_column(JsonType, nullable=False, default=list)
    sizes: Mapped[List[str]] = mapped_column(JsonType, nullable=False, default=list)
    colors: Mapped[List[str]] = mapped_column(JsonType, nullable=False, default=list)

    stock: Mapped[int] = mapped_column(Integer, nullable=False, default=100)
    variants_stock: Mapped[Optional[Dict[str, Any]]] = mapped_column(JsonType, nullable=True)

    is_new: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_featured: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    views: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    clicks: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    order_num: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now(), onupdate=utcnow
    )

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} stock={self.stock}>"
