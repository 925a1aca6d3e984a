# storefront/api/routers/shipping_routes_public.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.api.deps import get_session
from storefront.api.routers.shipping_schemas import PostalCodeOut, QuoteIn, QuoteOut, TrackingOut
from storefront.api.store_resolver import StoreInfo, resolve_store
from storefront.services.shipping import ShippingService, get_carriers, get_quote, validate_postal_code


def register(router: APIRouter) -> None:
    @router.post("/shipping/quote", response_model=QuoteOut)
    async def quote_shipping(payload: QuoteIn) -> QuoteOut:
        result = get_quote(
            payload.postal_code,
            [it.model_dump(exclude_none=True) for it in payload.items],
            payload.subtotal,
        )
        return QuoteOut(**result)

    @router.get("/shipping/carriers")
    async def list_carriers():
        return get_carriers()

    @router.get("/shipping/validate/{postal_code}", response_model=PostalCodeOut)
    async def validate_postal(postal_code: str) -> PostalCodeOut:
        return PostalCodeOut(**validate_postal_code(postal_code))

    @router.get("/shipping/tracking/order/{order_number}", response_model=TrackingOut)
    async def track_by_order(
        order_number: str,
        session: AsyncSession = Depends(get_session),
        store: Optional[StoreInfo] = Depends(resolve_store),
    ) -> TrackingOut:
        svc = ShippingService(session, store.id if store else None)
        return TrackingOut(**await svc.get_tracking_by_order_number(order_number))

    @router.get("/shipping/tracking/{tracking_number}", response_model=TrackingOut)
    async def track_shipment(
        tracking_number: str,
        session: AsyncSession = Depends(get_session),
        store: Optional[StoreInfo] = Depends(resolve_store),
    ) -> TrackingOut:
        """
        Public tracking. With a resolved store the lookup is limited to it;
        without one the shipment is found by tracking number alone.
        """
        svc = ShippingService(session, store.id if store else None)
        return TrackingOut(**await svc.get_tracking(tracking_number))
