# storefront/models/enums.py
from __future__ import annotations

from enum import Enum


class StoreStatus(str, Enum):
    ACTIVE = "active"
    TRIAL = "trial"
    SUSPENDED = "suspended"


class UserRole(str, Enum):
    CUSTOMER = "customer"
    ADMIN = "admin"
    STAFF = "staff"
    SUPER_ADMIN = "super_admin"


ADMIN_ROLES = frozenset({UserRole.ADMIN.value, UserRole.STAFF.value, UserRole.SUPER_ADMIN.value})


class OrderStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class ShipmentStatus(str, Enum):
    PENDING = "pending"
    CREATED = "created"
    SHIPPED = "shipped"
    IN_TRANSIT = "in_transit"
    DELIVERED = "delivered"
    FAILED = "failed"
    UNKNOWN = "unknown"


class LicenseStatus(str, Enum):
    GENERATED = "generated"
    ACTIVE = "active"
    SUSPENDED = "suspended"
    REVOKED = "revoked"
    EXPIRED = "expired"
