# storefront/api/routers/catalog_schemas.py
from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class CategoryIn(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    slug: Optional[str] = None
    description: Optional[str] = None
    image: Optional[str] = None
    order_num: int = 0
    is_active: bool = True


class CategoryUpdateIn(BaseModel):
    name: Optional[str] = None
    slug: Optional[str] = None
    description: Optional[str] = None
    image: Optional[str] = None
    order_num: Optional[int] = None
    is_active: Optional[bool] = None


class ProductIn(BaseModel):
    """Prices in centavos. With variants_stock, stock is the sum of the variants."""

    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    price: int = Field(..., gt=0)
    original_price: Optional[int] = Field(default=None, ge=0)
    transfer_price: Optional[int] = Field(default=None, ge=0)
    category_id: Optional[str] = None
    subcategory: Optional[str] = None
    images: List[str] = Field(default_factory=list)
    sizes: List[str] = Field(default_factory=list)
    colors: List[str] = Field(default_factory=list)
    stock: Optional[int] = Field(default=None, ge=0)
    variants_stock: Optional[Dict[str, int]] = None
    is_new: bool = False
    is_featured: bool = False
    is_active: bool = True
    order_num: int = 0


class ProductUpdateIn(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    price: Optional[int] = Field(default=None, gt=0)
    original_price: Optional[int] = Field(default=None, ge=0)
    transfer_price: Optional[int] = Field(default=None, ge=0)
    category_id: Optional[str] = None
    subcategory: Optional[str] = None
    images: Optional[List[str]] = None
    sizes: Optional[List[str]] = None
    colors: Optional[List[str]] = None
    stock: Optional[int] = Field(default=None, ge=0)
    variants_stock: Optional[Dict[str, int]] = None
    is_new: Optional[bool] = None
    is_featured: Optional[bool] = None
    is_active: Optional[bool] = None
    order_num: Optional[int] = None


class CheckStockIn(BaseModel):
    product_id: str
    quantity: int = Field(default=1, ge=1)
    color: Optional[str] = None
