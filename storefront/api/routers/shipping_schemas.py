# storefront/api/routers/shipping_schemas.py
from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class QuoteItemIn(BaseModel):
    quantity: int = Field(default=1, ge=1)
    weight: Optional[int] = Field(default=None, ge=0, description="grams per unit")


class QuoteIn(BaseModel):
    postal_code: str = Field(..., min_length=1)
    items: List[QuoteItemIn] = Field(default_factory=list)
    subtotal: int = Field(default=0, ge=0, description="centavos")


class ShipmentCreateIn(BaseModel):
    order_id: str = Field(..., min_length=1)
    carrier: Optional[str] = Field(
        default=None,
        description="enviopack | andreani | correo_argentino | mock (default: SHIPPING_PROVIDER)",
    )


class ShipmentOut(BaseModel):
    id: str
    order_id: str
    order_number: Optional[str] = None
    carrier: str
    tracking_number: Optional[str] = None
    label_url: Optional[str] = None
    status: str
    estimated_delivery: Optional[str] = None
    shipped_at: Optional[str] = None
    delivered_at: Optional[str] = None
    created_at: Optional[str] = None


class TrackingEventOut(BaseModel):
    date: str
    time: str
    status: str
    location: str
    description: str


class TrackingOut(BaseModel):
    success: bool
    tracking_number: str
    status: str
    carrier: str
    events: List[TrackingEventOut] = Field(default_factory=list)
    estimated_delivery: Optional[str] = None
    error: Optional[str] = None

    order_number: Optional[str] = None
    customer_name: Optional[str] = None
    shipping_address: Optional[str] = None


class PostalCodeOut(BaseModel):
    valid: bool
    postal_code: Optional[str] = None
    province: Optional[str] = None
    message: Optional[str] = None


class QuoteOut(BaseModel):
    quotes: List[Dict[str, Any]]
    weight_grams: int
    free_shipping_threshold: int
    qualifies_for_free_shipping: bool
