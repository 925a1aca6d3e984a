# storefront/services/shipping/__init__.py
from __future__ import annotations

from .quote import get_carriers, get_quote, validate_postal_code
from .registry import close_providers, get_provider, register_provider, reset_providers
from .service import ShippingService
from .types import (
    ShipmentInfo,
    ShipmentInput,
    ShipmentItem,
    ShipmentResult,
    ShippingProviderError,
    TrackingEvent,
    TrackingResult,
)

__all__ = [
    "ShippingService",
    "ShippingProviderError",
    "ShipmentInfo",
    "ShipmentInput",
    "ShipmentItem",
    "ShipmentResult",
    "TrackingEvent",
    "TrackingResult",
    "get_carriers",
    "get_quote",
    "validate_postal_code",
    "close_providers",
    "get_provider",
    "register_provider",
    "reset_providers",
]
