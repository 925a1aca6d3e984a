# storefront/services/shipping/providers/__init__.py
from __future__ import annotations

from .base import ShippingProvider
from .enviopack import EnviopackProvider
from .mock import MockShippingProvider

__all__ = ["ShippingProvider", "EnviopackProvider", "MockShippingProvider"]
