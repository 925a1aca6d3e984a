# storefront/api/routers/stores_schemas.py
from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, EmailStr, Field


class StoreOut(BaseModel):
    id: str
    name: str
    domain: Optional[str] = None
    status: str
    plan: str
    type: Optional[str] = None


class StoreCreateIn(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    domain: str = Field(..., min_length=2, max_length=128)
    owner_email: EmailStr
    owner_name: Optional[str] = None
    plan: str = Field(default="trial")


class StoreStatusIn(BaseModel):
    status: Literal["active", "trial", "suspended"]
