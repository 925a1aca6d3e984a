# storefront/services/shipping/providers/enviopack.py
"""
Enviopack (https://www.enviopack.com.ar) carrier adapter.

Auth: POST /auth with api-key / secret-key returns a token; every other call
carries it as ?access_token=. Amounts on the wire are pesos (floats), ours
are centavos.
"""

from __future__ import annotations

import logging
import re
import time
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional

import httpx

from storefront.core.config import AppSettings, get_settings
from storefront.services.shipping.providers.base import ShippingProvider
from storefront.services.shipping.types import (
    ShipmentInput,
    ShipmentResult,
    ShippingProviderError,
    TrackingEvent,
    TrackingResult,
)

log = logging.getLogger("storefront.shipping.enviopack")

TOKEN_TTL_SECONDS = 3.5 * 60 * 60
TOKEN_REFRESH_MARGIN_SECONDS = 5 * 60
KG_PER_ITEM = 0.3
PACKAGE_DIMENSIONS = {"alto": 10, "ancho": 30, "largo": 40}

DEFAULT_POSTAL_CODE = "8000"
DEFAULT_CITY = "Bahía Blanca"
DEFAULT_PROVINCE = "Buenos Aires"

_POSTAL_RE = re.compile(r"\b(\d{4})\b")

_STATUS_MAP = {
    "pendiente": "pending",
    "en_preparacion": "created",
    "despachado": "shipped",
    "en_transito": "in_transit",
    "en_distribucion": "in_transit",
    "entregado": "delivered",
    "no_entregado": "failed",
    "devuelto": "failed",
}


def map_status(raw: Optional[str]) -> str:
    return _STATUS_MAP.get((raw or "").lower(), "in_transit")


def parse_address(address: str) -> Dict[str, str]:
    """'Av. Colón 123, Bahía Blanca, Buenos Aires 8000' -> street / city / province / postal_code."""
    m = _POSTAL_RE.search(address or "")
    parts = [p.strip() for p in (address or "").split(",")]
    return {
        "street": parts[0] if parts and parts[0] else address,
        "number": "",
        "city": parts[1] if len(parts) > 1 and parts[1] else DEFAULT_CITY,
        "province": parts[2] if len(parts) > 2 and parts[2] else DEFAULT_PROVINCE,
        "postal_code": m.group(1) if m else DEFAULT_POSTAL_CODE,
    }


def _pesos(centavos: int) -> float:
    return centavos / 100


class EnviopackProvider(ShippingProvider):
    name = "enviopack"

    def __init__(
        self,
        *,
        settings: AppSettings | None = None,
        client: httpx.AsyncClient | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.settings = settings or get_settings()
        self.base_url = self.settings.ENVIOPACK_BASE_URL.rstrip("/")
        self._client = client
        self._owns_client = client is None
        self._clock = clock
        self._token: Optional[str] = None
        self._token_expires_at = 0.0

    # ---- transport --------------------------------------------------------

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=30)
        return self._client

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def access_token(self) -> str:
        if self._token and self._token_expires_at > self._clock() + TOKEN_REFRESH_MARGIN_SECONDS:
            return self._token

        api_key = self.settings.ENVIOPACK_API_KEY
        secret_key = self.settings.ENVIOPACK_SECRET_KEY
        if not api_key or not secret_key:
            raise ShippingProviderError(
                "ENVIOPACK_API_KEY y ENVIOPACK_SECRET_KEY son requeridos", carrier=self.name
            )

        try:
            resp = await self._http().post(
                f"{self.base_url}/auth", json={"api-key": api_key, "secret-key": secret_key}
            )
        except httpx.HTTPError as e:
            raise ShippingProviderError(f"Enviopack auth request failed: {e}", carrier=self.name) from e
        if resp.status_code >= 400:
            raise ShippingProviderError(
                f"Error de autenticación Enviopack: {resp.text}", carrier=self.name, status_code=resp.status_code
            )

        token = (resp.json() or {}).get("token")
        if not token:
            raise ShippingProviderError("Enviopack auth returned no token", carrier=self.name)
        self._token = token
        self._token_expires_at = self._clock() + TOKEN_TTL_SECONDS
        return token

    async def _request(
        self,
        method: str,
        endpoint: str,
        *,
        json: Any = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        token = await self.access_token()
        query = dict(params or {})
        query["access_token"] = token
        try:
            resp = await self._http().request(method, f"{self.base_url}{endpoint}", json=json, params=query)
        except httpx.HTTPError as e:
            raise ShippingProviderError(f"Enviopack request failed: {e}", carrier=self.name) from e
        if resp.status_code >= 400:
            raise ShippingProviderError(
                f"Enviopack API error: {resp.status_code} - {resp.text}",
                carrier=self.name,
                status_code=resp.status_code,
            )
        return resp.json()

    # ---- quotes -----------------------------------------------------------

    async def get_quote(
        self, origin_zip: str, dest_zip: str, weight_grams: int, declared_value: int
    ) -> List[Dict[str, Any]]:
        quotes = await self._request(
            "POST",
            "/cotizar",
            json={
                "codigo_postal_origen": origin_zip,
                "codigo_postal_destino": dest_zip,
                "peso": weight_grams / 1000,
                "valor_declarado": _pesos(declared_value),
            },
        )
        return [
            {
                "carrier": self.name,
                "carrier_id": q.get("correo_id"),
                "carrier_name": q.get("correo_nombre"),
                "service": q.get("servicio_nombre"),
                "service_id": q.get("servicio_id"),
                "price": round(float(q.get("precio") or 0) * 100),
                "estimated_days": {
                    "min": q.get("dias_entrega_min") or 3,
                    "max": q.get("dias_entrega_max") or 7,
                },
            }
            for q in quotes or []
        ]

    # ---- shipments --------------------------------------------------------

    def _sender(self) -> Dict[str, str]:
        s = self.settings
        return {
            "nombre": s.SHIPPING_ORIGIN_NAME,
            "email": s.SHIPPING_ORIGIN_EMAIL,
            "telefono": s.SHIPPING_ORIGIN_PHONE,
            "calle": s.SHIPPING_ORIGIN_ADDRESS,
            "numero": s.SHIPPING_ORIGIN_NUMBER,
            "codigo_postal": s.SHIPPING_ORIGIN_POSTAL_CODE,
            "localidad": s.SHIPPING_ORIGIN_CITY,
            "provincia": s.SHIPPING_ORIGIN_PROVINCE,
        }

    def build_order_payload(self, data: ShipmentInput) -> Dict[str, Any]:
        addr = parse_address(data.shipping_address)
        return {
            "id_externo": data.order_id,
            "numero": data.order_number,
            "destinatario": {
                "nombre": data.customer_name,
                "email": data.customer_email,
                "telefono": data.customer_phone or "",
                "documento": "",
                "calle": addr["street"],
                "numero": addr["number"],
                "piso": "",
                "depto": "",
                "codigo_postal": addr["postal_code"],
                "localidad": addr["city"],
                "provincia": addr["province"],
            },
            "remitente": self._sender(),
            "paquetes": [
                {"peso": round(sum(it.quantity * KG_PER_ITEM for it in data.items), 3), **PACKAGE_DIMENSIONS}
            ],
            "productos": [
                {"nombre": it.name, "cantidad": it.quantity, "precio": _pesos(it.price)} for it in data.items
            ],
            "valor_declarado": _pesos(data.total),
        }

    async def create_shipment(self, data: ShipmentInput) -> ShipmentResult:
        order = await self._request("POST", "/pedidos", json=self.build_order_payload(data))
        if not order or not order.get("id"):
            raise ShippingProviderError("No se pudo crear el pedido en Enviopack", carrier=self.name)

        shipment = await self._request("POST", f"/pedidos/{order['id']}/envios", json={"modalidad": "D"})
        if not shipment or not shipment.get("id"):
            raise ShippingProviderError("No se pudo generar el envío en Enviopack", carrier=self.name)

        label_url = f"{self.base_url}/envios/{shipment['id']}/etiqueta?access_token={await self.access_token()}"
        eta = (datetime.now(timezone.utc) + timedelta(days=5)).date()
        log.info("enviopack shipment created order=%s envio=%s", data.order_number, shipment["id"])
        return ShipmentResult(
            tracking_number=str(shipment.get("tracking_number") or shipment["id"]),
            label_url=label_url,
            label_data=label_url,
            estimated_delivery=eta.isoformat(),
            carrier=self.name,
            carrier_response={"orderId": order["id"], "shipmentId": shipment["id"], "provider": self.name},
        )

    async def get_tracking(self, tracking_number: str) -> TrackingResult:
        shipments = await self._request("GET", "/envios", params={"tracking": tracking_number})
        if not shipments:
            raise ShippingProviderError("Envío no encontrado", carrier=self.name, status_code=404)

        shipment = shipments[0]
        events = []
        for state in shipment.get("estados") or []:
            stamp = (state.get("fecha") or "").split(" ")
            events.append(
                TrackingEvent(
                    date=stamp[0] if stamp else "",
                    time=stamp[1] if len(stamp) > 1 else "",
                    status=map_status(state.get("estado")),
                    location=state.get("sucursal") or "",
                    description=state.get("descripcion") or state.get("estado") or "",
                )
            )
        return TrackingResult(
            success=True,
            tracking_number=tracking_number,
            status=map_status(shipment.get("estado")),
            carrier=self.name,
            events=events,
            estimated_delivery=shipment.get("fecha_estimada_entrega"),
        )
