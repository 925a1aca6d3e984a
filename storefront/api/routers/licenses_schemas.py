# storefront/api/routers/licenses_schemas.py
from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class LicenseActivateIn(BaseModel):
    serial: str = Field(..., min_length=1, description="TND-XXXX-XXXX-XXXX")


class LicenseGenerateIn(BaseModel):
    plan: str = Field(default="free")
    duration: str = Field(default="lifetime", description="1week | 1month | 3months | 6months | 1year | lifetime")
    owner_email: Optional[str] = None
    owner_name: Optional[str] = None


class LicenseOut(BaseModel):
    serial: str
    plan: str
    status: str
    store_id: Optional[str] = None
    max_products: Optional[int] = None
    max_orders: Optional[int] = None
    expires_at: Optional[str] = None


class LicenseUsageOut(BaseModel):
    plan: str
    product_count: int
    max_products: int
    order_count: int
    max_orders: int
    can_create_product: bool
    can_create_order: bool
    product_percentage: int
    order_percentage: int
