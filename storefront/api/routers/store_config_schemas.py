# storefront/api/routers/store_config_schemas.py
from __future__ import annotations

from typing import Any, Dict

from pydantic import BaseModel, Field


class ConfigEntryIn(BaseModel):
    key: str = Field(..., min_length=1, max_length=128)
    value: Any = None


class ConfigBulkIn(BaseModel):
    entries: Dict[str, Any] = Field(default_factory=dict)
