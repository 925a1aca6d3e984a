# storefront/api/routers/stock_schemas.py
from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class StockUpdateIn(BaseModel):
    stock: int = Field(..., ge=0)
    reason: Optional[str] = Field(default="manual_update", max_length=64)


class ThresholdIn(BaseModel):
    threshold: int = Field(..., ge=0, le=10000)
