# storefront/services/order_service.py
from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.api.errors import BizError, NotFoundError, ValidationError
from storefront.db.rls import with_store, with_store_context
from storefront.models import Order, OrderItem, Product, Store
from storefront.models.enums import OrderStatus
from storefront.obs.metrics import orders_created_total
from storefront.services.cart_service import CartService
from storefront.services.email_service import EmailService, get_email_service, send_best_effort
from storefront.services.license_service import LicenseService
from storefront.services.product_service import collect_low_stock, send_low_stock_alert
from storefront.utils.codes import order_number

log = logging.getLogger("storefront.orders")

VALID_STATUSES = tuple(s.value for s in OrderStatus)


def order_item_to_dict(it: OrderItem) -> Dict[str, Any]:
    return {
        "id": it.id,
        "order_id": it.order_id,
        "product_id": it.product_id,
        "product_name": it.product_name,
        "product_image": it.product_image,
        "price": it.price,
        "quantity": it.quantity,
        "size": it.size,
        "color": it.color,
    }


def order_to_dict(o: Order, *, with_items: bool = False) -> Dict[str, Any]:
    d: Dict[str, Any] = {
        "id": o.id,
        "store_id": o.store_id,
        "order_number": o.order_number,
        "user_id": o.user_id,
        "customer_name": o.customer_name,
        "customer_email": o.customer_email,
        "customer_phone": o.customer_phone,
        "shipping_address": o.shipping_address,
        "shipping_method": o.shipping_method,
        "shipping_cost": o.shipping_cost,
        "shipping_carrier": o.shipping_carrier,
        "tracking_number": o.tracking_number,
        "subtotal": o.subtotal,
        "total": o.total,
        "status": o.status,
        "payment_method": o.payment_method,
        "payment_status": o.payment_status,
        "payment_receipt": o.payment_receipt,
        "receipt_verified": o.receipt_verified,
        "notes": o.notes,
        "created_at": o.created_at.isoformat() if o.created_at else None,
    }
    if with_items:
        d["items"] = [order_item_to_dict(it) for it in o.items]
    return d


def _restore_stock(p: Product, quantity: int, color: Optional[str]) -> None:
    p.stock = p.stock + quantity
    if color and p.variants_stock and color in p.variants_stock:
        variants = dict(p.variants_stock)
        variants[color] = int(variants[color] or 0) + quantity
        p.variants_stock = variants


class OrderService:
    """
    Checkout and order back office.

    Amounts are integer centavos. Prices always come from the products
    table; whatever price the client sends is ignored.
    """

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

    # ---- lookups ----------------------------------------------------------

    def _scoped(self, stmt):
        if self.store_id:
            stmt = stmt.where(Order.store_id == self.store_id)
        return stmt

    async def _find(self, id_or_number: str, *, for_update: bool = False) -> Optional[Order]:
        stmt = select(Order).where(or_(Order.id == id_or_number, Order.order_number == id_or_number))
        if for_update:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        return (await self.session.execute(self._scoped(stmt).limit(1))).scalar_one_or_none()

    async def _require(self, id_or_number: str, *, for_update: bool = False) -> Order:
        order = await self._find(id_or_number, for_update=for_update)
        if order is None:
            raise NotFoundError("Orden no encontrada", code="ORDER_NOT_FOUND")
        return order

    async def _infer_store(self, product_ids: List[str]) -> str:
        async with with_store_context(self.session, None):
            rows = (
                await self.session.execute(select(Product.store_id).where(Product.id.in_(product_ids)).distinct())
            ).scalars().all()
        store_ids = set(rows)
        if not store_ids:
            raise NotFoundError("No se encontraron los productos", code="PRODUCT_NOT_FOUND")
        if len(store_ids) > 1:
            raise ValidationError("Los productos pertenecen a diferentes tiendas", code="MIXED_STORES")
        return store_ids.pop()

    # ---- checkout ---------------------------------------------------------

    async def create_order(self, data: Mapping[str, Any], *, user_id: Optional[str] = None) -> Dict[str, Any]:
        items = list(data.get("items") or [])
        customer_email = str(data.get("customer_email") or "").strip()
        customer_name = str(data.get("customer_name") or "").strip()
        if not customer_email or not customer_name or not items:
            raise ValidationError("Datos de orden incompletos", code="INCOMPLETE_ORDER")
        for it in items:
            if int(it.get("quantity") or 0) < 1:
                raise ValidationError("Cantidad inválida", code="INVALID_QUANTITY")

        product_ids = list({str(it["product_id"]) for it in items})
        store_id = self.store_id or await self._infer_store(product_ids)

        async with with_store(self.session, store_id):
            rows = (
                await self.session.execute(
                    select(Product)
                    .where(Product.id.in_(product_ids), Product.store_id == store_id)
                    .order_by(Product.id)
                    .with_for_update()
                    .execution_options(populate_existing=True)
                )
            ).scalars().all()
            products = {p.id: p for p in rows}

            subtotal = 0
            lines: List[Dict[str, Any]] = []
            for it in items:
                p = products.get(str(it["product_id"]))
                if p is None:
                    raise NotFoundError(f"Producto no encontrado: {it['product_id']}", code="PRODUCT_NOT_FOUND")
                qty = int(it["quantity"])
                color = it.get("color") or None
                variants = p.variants_stock or {}
                if color and color in variants:
                    if int(variants[color] or 0) < qty:
                        raise BizError(
                            f'Stock insuficiente de "{p.name}" en color "{color}"', code="INSUFFICIENT_STOCK"
                        )
                elif (p.stock or 0) < qty:
                    raise BizError(f'Stock insuficiente de "{p.name}"', code="INSUFFICIENT_STOCK")

                subtotal += p.price * qty
                lines.append(
                    {
                        "product": p,
                        "product_name": p.name,
                        "product_image": (p.images or [None])[0],
                        "price": p.price,
                        "quantity": qty,
                        "size": it.get("size") or None,
                        "color": color,
                    }
                )

            await LicenseService(self.session).assert_can_create_order(store_id)

            shipping_cost = int(data.get("shipping_cost") or 0)
            order = Order(
                store_id=store_id,
                order_number=order_number(),
                user_id=user_id,
                customer_name=customer_name,
                customer_email=customer_email,
                customer_phone=data.get("customer_phone"),
                shipping_address=data.get("shipping_address"),
                shipping_method=data.get("shipping_method"),
                shipping_cost=shipping_cost,
                subtotal=subtotal,
                total=subtotal + shipping_cost,
                payment_method=data.get("payment_method"),
                notes=data.get("notes"),
                status=OrderStatus.PENDING.value,
            )
            for line in lines:
                p = line.pop("product")
                order.items.append(OrderItem(store_id=store_id, product_id=p.id, **line))
                p.stock = p.stock - line["quantity"]
                color = line["color"]
                if color and p.variants_stock and color in p.variants_stock:
                    variants = dict(p.variants_stock)
                    variants[color] = int(variants[color] or 0) - line["quantity"]
                    p.variants_stock = variants
            self.session.add(order)
            await self.session.flush()

            alert = await collect_low_stock(self.session, store_id, list(products.values()))
            await CartService(self.session, store_id).mark_recovered(customer_email)

            store = await self.session.get(Store, store_id)
            owner_email = store.owner_email if store is not None else None
            summary = {
                "id": order.id,
                "order_number": order.order_number,
                "customer_name": customer_name,
                "customer_email": customer_email,
                "subtotal": subtotal,
                "shipping_cost": shipping_cost,
                "total": order.total,
                "payment_method": order.payment_method,
                "status": order.status,
                "items": [{k: v for k, v in line.items()} for line in lines],
            }

        orders_created_total.labels(store_id).inc()
        log.info("order created number=%s store=%s total=%s", summary["order_number"], store_id, summary["total"])

        await send_best_effort(self.email.send_order_confirmation(summary), "order_confirmation")
        if owner_email:
            await send_best_effort(
                self.email.send_new_order_notification(
                    owner_email, summary["order_number"], summary["total"], customer_name
                ),
                "new_order_notification",
            )
        await send_low_stock_alert(self.email, alert)

        return {
            "id": summary["id"],
            "order_number": summary["order_number"],
            "total": summary["total"],
            "status": summary["status"],
        }

    # ---- queries ----------------------------------------------------------

    async def get_order(self, id_or_number: str) -> Dict[str, Any]:
        async with with_store_context(self.session, self.store_id):
            return order_to_dict(await self._require(id_or_number), with_items=True)

    async def get_user_orders(self, user_id: str) -> List[Dict[str, Any]]:
        async with with_store_context(self.session, self.store_id):
            rows = (
                await self.session.execute(
                    self._scoped(select(Order).where(Order.user_id == user_id)).order_by(Order.created_at.desc())
                )
            ).scalars().all()
            return [order_to_dict(o) for o in rows]

    async def list_orders(
        self, *, status: Optional[str] = None, limit: int = 50, offset: int = 0
    ) -> Dict[str, Any]:
        async with with_store(self.session, self.store_id):
            conds = [Order.store_id == self.store_id]
            if status:
                conds.append(Order.status == status)
            total = (await self.session.execute(select(func.count()).select_from(Order).where(*conds))).scalar_one()
            rows = (
                await self.session.execute(
                    select(Order).where(*conds).order_by(Order.created_at.desc()).limit(limit).offset(offset)
                )
            ).scalars().all()
            return {"orders": [order_to_dict(o) for o in rows], "total": int(total)}

    # ---- back office ------------------------------------------------------

    async def update_order_status(
        self,
        order_id: str,
        status: Optional[str] = None,
        *,
        notes: Optional[str] = None,
        tracking_number: Optional[str] = None,
        carrier: Optional[str] = None,
    ) -> Dict[str, Any]:
        if status is not None and status not in VALID_STATUSES:
            raise ValidationError("Estado inválido", code="INVALID_STATUS")

        async with with_store(self.session, self.store_id):
            order = await self._require(order_id, for_update=True)

            if status == OrderStatus.CANCELLED.value and order.status != OrderStatus.CANCELLED.value:
                ids = [it.product_id for it in order.items if it.product_id]
                products = {
                    p.id: p
                    for p in (
                        await self.session.execute(
                            select(Product)
                            .where(Product.id.in_(ids))
                            .order_by(Product.id)
                            .with_for_update()
                            .execution_options(populate_existing=True)
                        )
                    ).scalars().all()
                }
                for it in order.items:
                    p = products.get(it.product_id or "")
                    if p is not None:
                        _restore_stock(p, it.quantity, it.color)
                log.info("stock restored for cancelled order %s", order.order_number)

            if status is not None:
                order.status = status
            if notes is not None:
                order.notes = notes
            if tracking_number is not None:
                order.tracking_number = tracking_number
            if carrier is not None:
                order.shipping_carrier = carrier
            await self.session.flush()
            result = order_to_dict(order)

        if status == OrderStatus.SHIPPED.value:
            await send_best_effort(
                self.email.send_order_status_update(
                    result["customer_email"],
                    result["customer_name"],
                    result["order_number"],
                    status,
                    result["tracking_number"],
                ),
                "order_status_update",
            )
        return result

    async def upload_receipt(self, order_number_or_id: str, receipt_url: str) -> Dict[str, Any]:
        if not receipt_url:
            raise ValidationError("URL del comprobante requerida", code="RECEIPT_REQUIRED")
        async with with_store_context(self.session, self.store_id):
            order = await self._require(order_number_or_id)
            order.payment_receipt = receipt_url
            await self.session.flush()
            return {"id": order.id, "order_number": order.order_number, "payment_receipt": receipt_url}

    async def verify_receipt(self, order_id: str, approved: bool, notes: Optional[str] = None) -> str:
        async with with_store_context(self.session, self.store_id):
            order = await self._require(order_id)
            if not order.payment_receipt:
                raise ValidationError("Esta orden no tiene comprobante adjunto", code="NO_RECEIPT")

            if approved:
                order.receipt_verified = True
                order.status = OrderStatus.PAID.value
                order.notes = notes if notes is not None else "Comprobante verificado"
            else:
                order.receipt_verified = False
                note = notes if notes is not None else "Comprobante rechazado"
                order.notes = f"{order.notes}\n{note}" if order.notes else note
            await self.session.flush()
            email, name, number = order.customer_email, order.customer_name, order.order_number

        if approved:
            await send_best_effort(
                self.email.send_order_status_update(email, name, number, OrderStatus.PAID.value), "receipt_approved"
            )
            return "Comprobante aprobado, orden marcada como pagada"
        return "Comprobante rechazado"

    async def get_pending_receipts(self) -> List[Dict[str, Any]]:
        async with with_store_context(self.session, self.store_id):
            stmt = select(Order).where(
                Order.payment_receipt.is_not(None),
                Order.receipt_verified.is_(False),
                Order.status == OrderStatus.PENDING.value,
            )
            rows = (await self.session.execute(self._scoped(stmt).order_by(Order.created_at.desc()))).scalars().all()
            return [order_to_dict(o) for o in rows]
