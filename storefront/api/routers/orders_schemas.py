# storefront/api/routers/orders_schemas.py
from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, EmailStr, Field

OrderStatusLiteral = Literal["pending", "paid", "processing", "shipped", "delivered", "cancelled"]


class OrderItemIn(BaseModel):
    product_id: str = Field(..., min_length=1)
    quantity: int = Field(..., ge=1)
    size: Optional[str] = None
    color: Optional[str] = None


class OrderCreateIn(BaseModel):
    """
    Checkout payload. Item prices are never accepted from the client; the
    order is priced from the catalog.
    """

    customer_name: str = Field(..., min_length=1)
    customer_email: EmailStr
    customer_phone: Optional[str] = None
    shipping_address: Optional[str] = None
    shipping_method: Optional[str] = None
    shipping_cost: int = Field(default=0, ge=0)
    payment_method: Optional[str] = None
    notes: Optional[str] = None
    items: List[OrderItemIn] = Field(..., min_length=1)


class OrderCreatedOut(BaseModel):
    id: str
    order_number: str
    total: int
    status: str


class OrderStatusIn(BaseModel):
    status: Optional[OrderStatusLiteral] = None
    notes: Optional[str] = None
    tracking_number: Optional[str] = None
    carrier: Optional[str] = None


class ReceiptIn(BaseModel):
    receipt_url: str = Field(..., min_length=1)


class VerifyReceiptIn(BaseModel):
    approved: bool
    notes: Optional[str] = None


class CartSaveIn(BaseModel):
    items: List[Dict[str, Any]]
    email: Optional[str] = None
    session_id: Optional[str] = None
    total: int = Field(default=0, ge=0)
