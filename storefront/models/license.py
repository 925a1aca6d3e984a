# storefront/models/license.py
from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from storefront.db.base import Base, utcnow


class License(Base):
    __tablename__ = "licenses"

    # TND-XXXX-XXXX-XXXX
    serial: Mapped[str] = mapped_column(String(32), primary_key=True)
    plan: Mapped[str] = mapped_column(String(32), nullable=False, default="free")
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="generated")

    store_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("stores.id", ondelete="SET NULL"), nullable=True, index=True
    )

    # NULL = unlimited
    max_products: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    max_orders: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    owner_email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    owner_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    expires_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    activated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )
