# storefront/models/order.py
from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from storefront.db.base import Base, new_id, utcnow

if TYPE_CHECKING:
    from storefront.models.order_item import OrderItem


class Order(Base):
    """
    Storefront order. Money columns are integer centavos.
    """

    __tablename__ = "orders"
    __table_args__ = (Index("ix_orders_store_status", "store_id", "status"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    store_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("stores.id", ondelete="CASCADE"), nullable=False, index=True
    )
    # XM-<base36 ts>-<4 rand>
    order_number: Mapped[str] = mapped_column(String(32), unique=True, index=True, nullable=False)
    user_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )

    customer_name: Mapped[str] = mapped_column(String(255), nullable=False)
    customer_email: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    customer_phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    shipping_address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    shipping_method: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    shipping_cost: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    shipping_carrier: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    tracking_number: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)

    subtotal: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="pending")

    payment_method: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    payment_status: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    payment_id: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    payment_receipt: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)
    receipt_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now(), onupdate=utcnow
    )

    items: Mapped[List["OrderItem"]] = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<Order id={self.id} number={self.order_number!r} status={self.status}>"
