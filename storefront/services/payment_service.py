# storefront/services/payment_service.py
"""
Online payments.

MercadoPago is the only gateway. Credentials come from the store's encrypted
config (mercadopago_access_token / mercadopago_webhook_secret) and fall back
to the process-wide settings.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Mapping, Optional

import httpx
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.api.errors import AuthError, BizError, NotFoundError, UpstreamError
from storefront.core.config import AppSettings, get_settings
from storefront.db.rls import with_store
from storefront.models import Order
from storefront.models.enums import OrderStatus
from storefront.services.config_service import ConfigService
from storefront.services.order_service import order_to_dict

log = logging.getLogger("storefront.payments")


class PaymentProviderError(Exception):
    pass


class PaymentProvider(ABC):
    name: str = ""

    @abstractmethod
    async def create_preference(self, order: Mapping[str, Any]) -> Dict[str, Any]:
        ...

    @abstractmethod
    def verify_webhook_signature(self, *, x_signature: str, x_request_id: str, data_id: str) -> bool:
        ...

    @abstractmethod
    async def get_payment_status(self, payment_id: str) -> Dict[str, Any]:
        ...


def parse_signature_header(x_signature: str) -> Dict[str, str]:
    """'ts=1704908010,v1=618c85...' -> {'ts': ..., 'v1': ...}"""
    parts: Dict[str, str] = {}
    for chunk in (x_signature or "").split(","):
        key, sep, value = chunk.strip().partition("=")
        if sep and key and value:
            parts[key.strip()] = value.strip()
    return parts


def signature_manifest(data_id: str, x_request_id: str, ts: str) -> str:
    return f"id:{data_id};request-id:{x_request_id};ts:{ts};"


def verify_mercadopago_signature(
    secret: Optional[str], *, x_signature: str, x_request_id: str, data_id: str
) -> bool:
    # no secret configured: reject
    if not secret:
        log.warning("mercadopago webhook secret not configured, rejecting webhook")
        return False
    if not x_signature or not x_request_id or not data_id:
        return False

    parts = parse_signature_header(x_signature)
    ts, received = parts.get("ts"), parts.get("v1")
    if not ts or not received:
        return False

    expected = hmac.new(
        secret.encode("utf-8"),
        signature_manifest(data_id, x_request_id, ts).encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()
    if not received.isascii():
        return False
    return hmac.compare_digest(expected, received.lower())


class MercadoPagoProvider(PaymentProvider):
    name = "mercadopago"

    def __init__(
        self,
        *,
        access_token: str,
        webhook_secret: Optional[str] = None,
        base_url: str = "https://api.mercadopago.com",
        store_url: str = "",
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.access_token = access_token
        self.webhook_secret = webhook_secret
        self.base_url = base_url.rstrip("/")
        self.store_url = store_url.rstrip("/")
        self._client = client

    async def _request(self, method: str, path: str, *, json: Any = None) -> Dict[str, Any]:
        if not self.access_token:
            raise PaymentProviderError("MercadoPago access token not configured")
        headers = {"Authorization": f"Bearer {self.access_token}"}
        try:
            if self._client is not None:
                resp = await self._client.request(method, f"{self.base_url}{path}", json=json, headers=headers)
            else:
                async with httpx.AsyncClient(timeout=20) as client:
                    resp = await client.request(method, f"{self.base_url}{path}", json=json, headers=headers)
        except httpx.HTTPError as e:
            raise PaymentProviderError(f"MercadoPago request failed: {e}") from e
        if resp.status_code >= 400:
            raise PaymentProviderError(f"MercadoPago API error: {resp.status_code} - {resp.text}")
        return resp.json()

    async def create_preference(self, order: Mapping[str, Any]) -> Dict[str, Any]:
        items = [
            {
                "id": it.get("product_id") or it.get("id"),
                "title": it.get("product_name"),
                "quantity": int(it.get("quantity") or 1),
                "unit_price": int(it.get("price") or 0) / 100,
                "currency_id": "ARS",
            }
            for it in order.get("items") or []
        ]
        if order.get("shipping_cost"):
            items.append(
                {
                    "id": "shipping",
                    "title": "Envío",
                    "quantity": 1,
                    "unit_price": int(order["shipping_cost"]) / 100,
                    "currency_id": "ARS",
                }
            )
        body: Dict[str, Any] = {
            "items": items,
            "external_reference": order["order_number"],
            "payer": {"email": order.get("customer_email"), "name": order.get("customer_name")},
        }
        if self.store_url:
            body["back_urls"] = {
                "success": f"{self.store_url}/#/checkout/success",
                "failure": f"{self.store_url}/#/checkout/failure",
                "pending": f"{self.store_url}/#/checkout/pending",
            }
            body["auto_return"] = "approved"

        result = await self._request("POST", "/checkout/preferences", json=body)
        if not result.get("id") or not result.get("init_point"):
            raise PaymentProviderError("MercadoPago returned an incomplete preference")
        return {
            "id": result["id"],
            "init_point": result["init_point"],
            "sandbox_init_point": result.get("sandbox_init_point"),
        }

    def verify_webhook_signature(self, *, x_signature: str, x_request_id: str, data_id: str) -> bool:
        return verify_mercadopago_signature(
            self.webhook_secret, x_signature=x_signature, x_request_id=x_request_id, data_id=data_id
        )

    async def get_payment_status(self, payment_id: str) -> Dict[str, Any]:
        result = await self._request("GET", f"/v1/payments/{payment_id}")
        if not result.get("id") or not result.get("status"):
            raise PaymentProviderError("Invalid payment response from MercadoPago")
        return {
            "id": str(result["id"]),
            "status": result["status"],
            "status_detail": result.get("status_detail") or "",
            "external_reference": result.get("external_reference") or "",
            "transaction_amount": result.get("transaction_amount") or 0,
            "currency_id": result.get("currency_id") or "ARS",
        }


ProviderFactory = Callable[[Optional[str], Optional[str]], PaymentProvider]


class PaymentService:
    def __init__(
        self,
        session: AsyncSession,
        store_id: str,
        *,
        settings: AppSettings | None = None,
        provider_factory: ProviderFactory | None = None,
    ) -> None:
        self.session = session
        self.store_id = store_id
        self.settings = settings or get_settings()
        self._factory = provider_factory

    def _make_provider(self, access_token: Optional[str], webhook_secret: Optional[str]) -> PaymentProvider:
        if self._factory is not None:
            return self._factory(access_token, webhook_secret)
        return MercadoPagoProvider(
            access_token=access_token or "",
            webhook_secret=webhook_secret,
            base_url=self.settings.MERCADOPAGO_BASE_URL,
            store_url=self.settings.STORE_URL,
        )

    async def _provider(self) -> PaymentProvider:
        """In-transaction: store credentials first, then global ones."""
        cfg = ConfigService(self.session, self.store_id)
        token = await cfg.read("mercadopago_access_token") or self.settings.MERCADOPAGO_ACCESS_TOKEN
        secret = await cfg.read("mercadopago_webhook_secret") or self.settings.MERCADOPAGO_WEBHOOK_SECRET
        return self._make_provider(token or None, secret or None)

    async def create_checkout(self, order_id_or_number: str) -> Dict[str, Any]:
        async with with_store(self.session, self.store_id):
            order = (
                await self.session.execute(
                    select(Order).where(
                        Order.store_id == self.store_id,
                        (Order.id == order_id_or_number) | (Order.order_number == order_id_or_number),
                    )
                )
            ).scalar_one_or_none()
            if order is None:
                raise NotFoundError("Orden no encontrada", code="ORDER_NOT_FOUND")
            if order.status != OrderStatus.PENDING.value:
                raise BizError("La orden ya no admite pagos", code="ORDER_NOT_PAYABLE", status=409)
            payload = order_to_dict(order, with_items=True)
            provider = await self._provider()

        try:
            return await provider.create_preference(payload)
        except PaymentProviderError as e:
            log.error("payment preference failed order=%s: %s", payload["order_number"], e)
            raise UpstreamError(str(e), code="PAYMENT_PROVIDER_ERROR") from e

    async def handle_webhook(
        self, *, x_signature: str, x_request_id: str, data_id: str, topic: Optional[str] = "payment"
    ) -> Dict[str, Any]:
        async with with_store(self.session, self.store_id):
            provider = await self._provider()

        if not provider.verify_webhook_signature(x_signature=x_signature, x_request_id=x_request_id, data_id=data_id):
            raise AuthError("Invalid webhook signature", code="INVALID_SIGNATURE")
        if topic and topic != "payment":
            return {"processed": False, "reason": f"ignored topic {topic}"}

        try:
            payment = await provider.get_payment_status(data_id)
        except PaymentProviderError as e:
            raise UpstreamError(str(e), code="PAYMENT_PROVIDER_ERROR") from e

        async with with_store(self.session, self.store_id):
            order = (
                await self.session.execute(
                    select(Order).where(
                        Order.store_id == self.store_id, Order.order_number == payment["external_reference"]
                    )
                )
            ).scalar_one_or_none()
            if order is None:
                log.warning("webhook for unknown order reference=%s", payment["external_reference"])
                return {"processed": False, "reason": "order not found"}

            order.payment_id = payment["id"]
            order.payment_status = payment["status"]
            if payment["status"] == "approved" and order.status == OrderStatus.PENDING.value:
                order.status = OrderStatus.PAID.value
            await self.session.flush()
            log.info("payment %s for order %s: %s", payment["id"], order.order_number, payment["status"])
            return {"processed": True, "order_number": order.order_number, "status": order.status}
