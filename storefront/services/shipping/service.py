# storefront/services/shipping/service.py
"""
Shipment orchestration.

Every operation runs inside with_store_context(store_id): with a store id the
transaction is RLS-scoped to that tenant, without one (public tracking) it
runs unscoped and strict policies hide tenant rows.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.api.errors import BizError, ConflictError, ForbiddenError, NotFoundError, UpstreamError
from storefront.db.base import utcnow
from storefront.db.rls import with_store_context
from storefront.models import Order, OrderItem, Shipment
from storefront.models.enums import OrderStatus, ShipmentStatus
from storefront.obs.metrics import carrier_errors_total, shipments_created_total
from storefront.services.email_service import EmailService, get_email_service, send_best_effort
from storefront.services.shipping.registry import default_carrier, get_provider
from storefront.services.shipping.types import (
    ShipmentInfo,
    ShipmentInput,
    ShipmentItem,
    ShippingProviderError,
    TrackingResult,
)

log = logging.getLogger("storefront.shipping")

NO_ADDRESS = "Sin dirección especificada"


def _iso(dt) -> Optional[str]:
    return dt.isoformat() if dt is not None else None


def shipment_info(s: Shipment, order_number: Optional[str], estimated_delivery: Optional[str] = None) -> ShipmentInfo:
    return ShipmentInfo(
        id=s.id,
        order_id=s.order_id,
        order_number=order_number,
        carrier=s.carrier,
        tracking_number=s.tracking_number,
        label_url=s.label_url,
        status=s.status,
        estimated_delivery=estimated_delivery,
        created_at=_iso(s.created_at) or _iso(utcnow()),
        shipped_at=_iso(s.shipped_at),
        delivered_at=_iso(s.delivered_at),
    )


class ShippingService:
    def __init__(
        self,
        session: AsyncSession,
        store_id: Optional[str] = None,
        *,
        email: EmailService | None = None,
    ) -> None:
        self.session = session
        self.store_id = store_id
        self.email = email or get_email_service()

    def _store(self, store_id: Optional[str]) -> Optional[str]:
        return store_id or self.store_id

    # ------------------------------------------------------------------ #
    # create
    # ------------------------------------------------------------------ #

    async def create_shipment(
        self, order_id: str, carrier: Optional[str] = None, store_id: Optional[str] = None
    ) -> ShipmentInfo:
        store_id = self._store(store_id)
        carrier = (carrier or default_carrier()).strip().lower()

        async with with_store_context(self.session, store_id):
            existing = (
                await self.session.execute(select(Shipment.id).where(Shipment.order_id == order_id).limit(1))
            ).first()
            if existing is not None:
                raise ConflictError("Ya existe un envío para esta orden", code="SHIPMENT_EXISTS")

            order = (await self.session.execute(select(Order).where(Order.id == order_id))).scalar_one_or_none()
            if order is None:
                raise NotFoundError("Orden no encontrada", code="ORDER_NOT_FOUND")

            items = (
                await self.session.execute(select(OrderItem).where(OrderItem.order_id == order_id))
            ).scalars().all()
            item_store_id = items[0].store_id if items else None
            if not item_store_id:
                raise BizError("No se pudo determinar la tienda de la orden", code="ORDER_STORE_UNKNOWN", status=400)
            if store_id and item_store_id != store_id:
                raise ForbiddenError("La orden no pertenece a esta tienda", code="ORDER_STORE_MISMATCH")

            data = ShipmentInput(
                order_id=order.id,
                order_number=order.order_number,
                customer_name=order.customer_name,
                customer_email=order.customer_email,
                customer_phone=order.customer_phone,
                shipping_address=order.shipping_address or NO_ADDRESS,
                items=[ShipmentItem(name=it.product_name, quantity=it.quantity, price=it.price) for it in items],
                total=order.total,
            )

            try:
                result = await get_provider(carrier).create_shipment(data)
            except ShippingProviderError as e:
                carrier_errors_total.labels(carrier, "create").inc()
                log.error("carrier %s failed to create shipment for order %s: %s", carrier, order.order_number, e)
                raise UpstreamError(e.message or "Error al crear envío", code="CARRIER_ERROR") from e

            shipment = Shipment(
                store_id=item_store_id,
                order_id=order.id,
                carrier=carrier,
                tracking_number=result.tracking_number or None,
                label_url=result.label_url or None,
                label_data=result.label_data or None,
                status=ShipmentStatus.CREATED.value,
                carrier_response=dict(result.carrier_response or {}),
            )
            self.session.add(shipment)

            order.shipping_carrier = carrier
            order.tracking_number = result.tracking_number
            # stays processing until the carrier reports it shipped
            order.status = OrderStatus.PROCESSING.value
            await self.session.flush()

            info = shipment_info(shipment, order.order_number, result.estimated_delivery)
            buyer = (order.customer_email, order.customer_name, order.order_number)

        shipments_created_total.labels(carrier).inc()
        log.info("shipment created order=%s carrier=%s tracking=%s", info.order_number, carrier, info.tracking_number)

        await send_best_effort(
            self.email.send_order_status_update(*buyer, OrderStatus.SHIPPED.value, info.tracking_number),
            "shipment_created",
        )
        return info

    # ------------------------------------------------------------------ #
    # tracking
    # ------------------------------------------------------------------ #

    async def get_tracking(self, tracking_number: str, store_id: Optional[str] = None) -> Dict[str, Any]:
        store_id = self._store(store_id)

        async with with_store_context(self.session, store_id):
            stmt = (
                select(Shipment, Order)
                .join(Order, Order.id == Shipment.order_id)
                .where(Shipment.tracking_number == tracking_number)
            )
            if store_id:
                stmt = stmt.where(Shipment.store_id == store_id)
            row = (await self.session.execute(stmt.limit(1))).first()
            if row is None:
                raise NotFoundError("Número de seguimiento no encontrado", code="TRACKING_NOT_FOUND")
            shipment, order = row

            try:
                tracking = await get_provider(shipment.carrier).get_tracking(tracking_number)
            except ShippingProviderError as e:
                carrier_errors_total.labels(shipment.carrier, "tracking").inc()
                log.warning("tracking lookup failed carrier=%s tracking=%s: %s", shipment.carrier, tracking_number, e)
                tracking = TrackingResult(
                    success=False,
                    tracking_number=tracking_number,
                    status=ShipmentStatus.UNKNOWN.value,
                    carrier=shipment.carrier,
                    error=e.message or "Error al obtener tracking",
                )

            if tracking.success and tracking.status != shipment.status:
                now = utcnow()
                shipment.status = tracking.status
                if tracking.status == ShipmentStatus.SHIPPED.value and shipment.shipped_at is None:
                    shipment.shipped_at = now
                if tracking.status == ShipmentStatus.DELIVERED.value and shipment.delivered_at is None:
                    shipment.delivered_at = now

                if tracking.status == ShipmentStatus.SHIPPED.value:
                    order.status = OrderStatus.SHIPPED.value
                elif tracking.status == ShipmentStatus.DELIVERED.value:
                    order.status = OrderStatus.DELIVERED.value
                await self.session.flush()

            out = tracking.to_dict()
            out.update(
                order_number=order.order_number,
                customer_name=order.customer_name,
                shipping_address=order.shipping_address,
            )
            return out

    async def get_tracking_by_order_number(self, order_number: str, store_id: Optional[str] = None) -> Dict[str, Any]:
        store_id = self._store(store_id)

        async with with_store_context(self.session, store_id):
            stmt = (
                select(Shipment.tracking_number)
                .join(Order, Order.id == Shipment.order_id)
                .where(Order.order_number == order_number)
            )
            if store_id:
                stmt = stmt.where(Shipment.store_id == store_id)
            tracking_number = (await self.session.execute(stmt.limit(1))).scalar_one_or_none()

        if not tracking_number:
            raise NotFoundError("No se encontró envío para esta orden", code="SHIPMENT_NOT_FOUND")
        return await self.get_tracking(tracking_number, store_id)

    # ------------------------------------------------------------------ #
    # lookups
    # ------------------------------------------------------------------ #

    async def get_shipment_by_order_id(self, order_id: str, store_id: Optional[str] = None) -> Optional[ShipmentInfo]:
        store_id = self._store(store_id)

        async with with_store_context(self.session, store_id):
            stmt = (
                select(Shipment, Order.order_number)
                .join(Order, Order.id == Shipment.order_id)
                .where(Shipment.order_id == order_id)
            )
            if store_id:
                stmt = stmt.where(Shipment.store_id == store_id)
            row = (await self.session.execute(stmt.limit(1))).first()
            if row is None:
                return None
            return shipment_info(row[0], row[1])

    async def get_label_data(self, order_id: str, store_id: Optional[str] = None) -> Optional[str]:
        store_id = self._store(store_id)

        async with with_store_context(self.session, store_id):
            stmt = select(Shipment.label_data).where(Shipment.order_id == order_id)
            if store_id:
                stmt = stmt.where(Shipment.store_id == store_id)
            return (await self.session.execute(stmt.limit(1))).scalar_one_or_none() or None
