# storefront/services/shipping/providers/base.py
from __future__ import annotations

from abc import ABC, abstractmethod

from storefront.services.shipping.types import ShipmentInput, ShipmentResult, TrackingResult


class ShippingProvider(ABC):
    """
    Carrier adapter. Implementations raise ShippingProviderError on failure;
    they never return half-filled results.
    """

    name: str = ""

    @abstractmethod
    async def create_shipment(self, data: ShipmentInput) -> ShipmentResult:
        ...

    @abstractmethod
    async def get_tracking(self, tracking_number: str) -> TrackingResult:
        ...

    async def aclose(self) -> None:
        """Release network resources, if any."""
        return None
