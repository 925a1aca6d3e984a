# storefront/api/routers/tryon_schemas.py
from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class TryOnIn(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    model_image: str = Field(..., description="URL or data URI of the person photo")
    garment_image: str = Field(..., description="URL or data URI of the garment")
    garment_type: str = Field(default="upper", description="upper | lower")


class TryOnOut(BaseModel):
    success: bool
    image_url: str
    provider: str
