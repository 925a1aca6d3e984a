# storefront/api/routers/reviews_schemas.py
from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, EmailStr, Field


class ReviewIn(BaseModel):
    product_id: str = Field(..., min_length=1)
    customer_name: str = Field(..., min_length=1, max_length=255)
    customer_email: EmailStr
    # range is checked by the service (INVALID_RATING)
    rating: int
    title: Optional[str] = Field(default=None, max_length=255)
    comment: Optional[str] = None


class ReviewModerateIn(BaseModel):
    approved: bool
