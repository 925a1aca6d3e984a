# storefront/models/shipment.py
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import DateTime, ForeignKey, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from storefront.db.base import Base, JsonType, new_id, utcnow


class Shipment(Base):
    """
    One shipment per order (order_id unique).

    - label_data: HTML label (mock) or label PDF url (enviopack)
    - shipped_at / delivered_at are stamped once, on first observation
    """

    __tablename__ = "shipments"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    store_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("stores.id", ondelete="CASCADE"), nullable=False, index=True
    )
    order_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, unique=True
    )

    carrier: Mapped[str] = mapped_column(String(32), nullable=False)
    tracking_number: Mapped[Optional[str]] = mapped_column(String(128), nullable=True, index=True)
    label_url: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)
    label_data: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="created")
    carrier_response: Mapped[Dict[str, Any]] = mapped_column(JsonType, nullable=False, default=dict)

    shipped_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    delivered_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now(), onupdate=utcnow
    )
