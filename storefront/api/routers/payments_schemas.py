# storefront/api/routers/payments_schemas.py
from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class PreferenceIn(BaseModel):
    order_id: str = Field(..., min_length=1, description="order id or order number")


class PreferenceOut(BaseModel):
    id: str
    init_point: str
    sandbox_init_point: Optional[str] = None


class WebhookIn(BaseModel):
    """MercadoPago notification body: {"type": "payment", "data": {"id": "..."}}."""

    type: Optional[str] = None
    action: Optional[str] = None
    data: Dict[str, Any] = Field(default_factory=dict)
