# storefront/services/shipping/quote.py
"""
Checkout shipping quotes. Zone pricing only; nothing here touches the
database or a carrier API.
"""

from __future__ import annotations

import re
from typing import Any, Dict, Iterable, List, Mapping, Optional

from storefront.core.config import AppSettings, get_settings

DEFAULT_ITEM_WEIGHT_GRAMS = 500
DEFAULT_TOTAL_WEIGHT_GRAMS = 1000
EXPRESS_FACTOR = 1.5

ZONE_PRICES = {
    "local": 0,
    "cercana": 350000,
    "media": 550000,
    "lejana": 750000,
}

PROVINCE_BY_FIRST_DIGIT = {
    "1": "Buenos Aires",
    "2": "Santa Fe",
    "3": "Entre Ríos",
    "4": "Tucumán",
    "5": "Córdoba",
    "6": "La Pampa",
    "7": "Neuquén",
    "8": "Buenos Aires Sur",
    "9": "Patagonia Sur",
}

CARRIERS = (
    {"id": "correo", "name": "Correo Argentino", "enabled": True},
    {"id": "andreani", "name": "Andreani", "enabled": False},
    {"id": "local", "name": "Retiro en Local", "enabled": True},
)

_POSTAL_CODE_RE = re.compile(r"^\d{4}$")


def province_for(postal_code: str) -> str:
    return PROVINCE_BY_FIRST_DIGIT.get((postal_code or "")[:1], "Argentina")


def zone_for(origin_zip: str, dest_zip: str) -> str:
    if origin_zip == dest_zip:
        return "local"
    first = (dest_zip or "")[:1]
    if first == "8":
        return "cercana"
    if first == "9":
        return "lejana"
    return "media"


def zone_price(origin_zip: str, dest_zip: str) -> int:
    return ZONE_PRICES[zone_for(origin_zip, dest_zip)]


def total_weight(items: Optional[Iterable[Mapping[str, Any]]]) -> int:
    items = list(items or [])
    if not items:
        return DEFAULT_TOTAL_WEIGHT_GRAMS
    return sum(int(it.get("weight") or DEFAULT_ITEM_WEIGHT_GRAMS) * int(it.get("quantity") or 1) for it in items)


def _enabled(carrier_id: str) -> bool:
    return any(c["id"] == carrier_id and c["enabled"] for c in CARRIERS)


def get_quote(
    postal_code: str,
    items: Optional[Iterable[Mapping[str, Any]]] = None,
    subtotal: int = 0,
    *,
    settings: AppSettings | None = None,
) -> Dict[str, Any]:
    settings = settings or get_settings()
    threshold = settings.FREE_SHIPPING_THRESHOLD
    is_free = subtotal >= threshold
    base = zone_price(settings.SHIPPING_ORIGIN_ZIP, postal_code)

    quotes: List[Dict[str, Any]] = []
    if _enabled("correo"):
        quotes.append(
            {
                "carrier": "correo",
                "carrier_name": "Correo Argentino",
                "service": "Envío Estándar",
                "price": 0 if is_free else base,
                "estimated_days": {"min": 3, "max": 6},
                "is_free": is_free,
            }
        )
        quotes.append(
            {
                "carrier": "correo_express",
                "carrier_name": "Correo Argentino",
                "service": "Envío Express",
                "price": 0 if is_free else round(base * EXPRESS_FACTOR),
                "estimated_days": {"min": 1, "max": 3},
                "is_free": is_free,
            }
        )
    if _enabled("local"):
        quotes.append(
            {
                "carrier": "local",
                "carrier_name": "Retiro en Local",
                "service": "Retiro en el local",
                "price": 0,
                "estimated_days": {"min": 1, "max": 1},
                "is_free": True,
            }
        )

    return {
        "quotes": quotes,
        "weight_grams": total_weight(items),
        "free_shipping_threshold": threshold,
        "qualifies_for_free_shipping": is_free,
    }


def get_carriers(*, settings: AppSettings | None = None) -> Dict[str, Any]:
    settings = settings or get_settings()
    return {
        "carriers": [dict(c) for c in CARRIERS if c["enabled"]],
        "free_shipping_threshold": settings.FREE_SHIPPING_THRESHOLD,
    }


def validate_postal_code(code: str) -> Dict[str, Any]:
    if not _POSTAL_CODE_RE.match(code or ""):
        return {"valid": False, "message": "Código postal debe tener 4 dígitos"}
    return {"valid": True, "postal_code": code, "province": province_for(code)}
