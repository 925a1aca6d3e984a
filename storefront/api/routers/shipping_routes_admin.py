# storefront/api/routers/shipping_routes_admin.py
from __future__ import annotations

from fastapi import APIRouter, Depends, status
from fastapi.responses import HTMLResponse
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.api.deps import get_session
from storefront.api.errors import NotFoundError
from storefront.api.routers.shipping_schemas import ShipmentCreateIn, ShipmentOut
from storefront.api.store_resolver import StoreInfo, require_store_admin
from storefront.services.shipping import ShippingService


def register(router: APIRouter) -> None:
    @router.post(
        "/admin/shipping/create",
        response_model=ShipmentOut,
        status_code=status.HTTP_201_CREATED,
    )
    async def create_shipment(
        payload: ShipmentCreateIn,
        session: AsyncSession = Depends(get_session),
        store: StoreInfo = Depends(require_store_admin),
    ) -> ShipmentOut:
        info = await ShippingService(session, store.id).create_shipment(payload.order_id, payload.carrier)
        return ShipmentOut(**info.to_dict())

    @router.get("/admin/shipping/label/{order_id}", response_class=HTMLResponse)
    async def get_label(
        order_id: str,
        session: AsyncSession = Depends(get_session),
        store: StoreInfo = Depends(require_store_admin),
    ) -> HTMLResponse:
        label = await ShippingService(session, store.id).get_label_data(order_id)
        if not label:
            raise NotFoundError("Etiqueta no encontrada", code="LABEL_NOT_FOUND")
        return HTMLResponse(content=label)

    @router.get("/admin/shipping/{order_id}", response_model=ShipmentOut)
    async def get_shipment(
        order_id: str,
        session: AsyncSession = Depends(get_session),
        store: StoreInfo = Depends(require_store_admin),
    ) -> ShipmentOut:
        info = await ShippingService(session, store.id).get_shipment_by_order_id(order_id)
        if info is None:
            raise NotFoundError("No hay envío para esta orden", code="SHIPMENT_NOT_FOUND")
        return ShipmentOut(**info.to_dict())
