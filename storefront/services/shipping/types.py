# storefront/services/shipping/types.py
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Literal, Optional

ShippingCarrier = Literal["enviopack", "andreani", "correo_argentino", "mock"]
KNOWN_CARRIERS = ("enviopack", "andreani", "correo_argentino", "mock")


class ShippingProviderError(Exception):
    """A carrier call failed (auth, transport, or an unusable answer)."""

    def __init__(self, message: str, *, carrier: str = "", status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.carrier = carrier
        self.status_code = status_code


@dataclass
class ShipmentItem:
    name: str
    quantity: int
    price: int  # centavos


@dataclass
class ShipmentInput:
    order_id: str
    order_number: str
    customer_name: str
    customer_email: str
    shipping_address: str
    items: List[ShipmentItem]
    total: int
    customer_phone: Optional[str] = None


@dataclass
class ShipmentResult:
    tracking_number: str
    label_url: str
    label_data: str  # HTML label or label PDF url
    estimated_delivery: Optional[str]
    carrier: str
    carrier_response: Dict[str, Any] = field(default_factory=dict)


@dataclass
class TrackingEvent:
    date: str
    time: str
    status: str
    location: str
    description: str


@dataclass
class TrackingResult:
    success: bool
    tracking_number: str
    status: str
    carrier: str
    events: List[TrackingEvent] = field(default_factory=list)
    estimated_delivery: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ShipmentInfo:
    id: str
    order_id: str
    carrier: str
    status: str
    created_at: str
    order_number: Optional[str] = None
    tracking_number: Optional[str] = None
    label_url: Optional[str] = None
    estimated_delivery: Optional[str] = None
    shipped_at: Optional[str] = None
    delivered_at: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
