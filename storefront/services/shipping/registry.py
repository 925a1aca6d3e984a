# storefront/services/shipping/registry.py
from __future__ import annotations

import logging
from typing import Dict, Optional

from storefront.core.config import get_settings
from storefront.services.shipping.providers.base import ShippingProvider
from storefront.services.shipping.providers.enviopack import EnviopackProvider
from storefront.services.shipping.providers.mock import MockShippingProvider

log = logging.getLogger("storefront.shipping")

# andreani / correo_argentino have no live integration yet; they ship through mock
_MOCK_BACKED = ("andreani", "correo_argentino")

_providers: Dict[str, ShippingProvider] = {}


def default_carrier() -> str:
    return (get_settings().SHIPPING_PROVIDER or "mock").strip().lower() or "mock"


def _build(name: str) -> ShippingProvider:
    if name == "enviopack":
        return EnviopackProvider()
    if name in _MOCK_BACKED:
        log.warning("carrier %s has no active integration, using mock", name)
    elif name != "mock":
        log.warning("unknown carrier %r, using mock", name)
    return MockShippingProvider()


def get_provider(name: Optional[str] = None) -> ShippingProvider:
    """One cached provider instance per carrier name."""
    key = (name or default_carrier()).strip().lower()
    provider = _providers.get(key)
    if provider is None:
        provider = _build(key)
        _providers[key] = provider
    return provider


def register_provider(name: str, provider: ShippingProvider) -> None:
    _providers[name.strip().lower()] = provider


def reset_providers() -> None:
    _providers.clear()


async def close_providers() -> None:
    """Close the cached providers' HTTP clients and empty the cache."""
    seen = set()
    for provider in list(_providers.values()):
        if id(provider) in seen:
            continue
        seen.add(id(provider))
        await provider.aclose()
    _providers.clear()
