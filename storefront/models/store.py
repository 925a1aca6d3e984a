# storefront/models/store.py
from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, String, func
from sqlalchemy.orm import Mapped, mapped_column

from storefront.db.base import Base, new_id, utcnow


class Store(Base):
    """
    Tenant root. Every tenant table references stores.id through store_id.
    """

    __tablename__ = "stores"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    # subdomain key: "<domain>.tiendita.app"
    domain: Mapped[Optional[str]] = mapped_column(String(128), unique=True, nullable=True)
    custom_domain: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    status: Mapped[str] = mapped_column(String(16), nullable=False, default="active")
    type: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    plan: Mapped[str] = mapped_column(String(32), nullable=False, default="free")
    license_key: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)

    owner_email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    owner_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    trial_ends_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    subscription_ends_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now(), onupdate=utcnow
    )
    deleted_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    def __repr__(self) -> str:
        return f"<Store id={self.id} domain={self.domain!r} status={self.status}>"
