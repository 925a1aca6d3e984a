# storefront/api/routers/payments_routes.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Header, Query
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.api.deps import get_session
from storefront.api.errors import ValidationError
from storefront.api.routers.payments_schemas import PreferenceIn, PreferenceOut, WebhookIn
from storefront.api.store_resolver import StoreInfo, require_store
from storefront.services.payment_service import PaymentService


def register(router: APIRouter) -> None:
    @router.post("/preference", response_model=PreferenceOut)
    async def create_preference(
        body: PreferenceIn,
        session: AsyncSession = Depends(get_session),
        store: StoreInfo = Depends(require_store),
    ) -> PreferenceOut:
        return PreferenceOut(**await PaymentService(session, store.id).create_checkout(body.order_id))

    @router.post("/webhook")
    async def payment_webhook(
        body: WebhookIn,
        data_id_q: Optional[str] = Query(None, alias="data.id"),
        topic_q: Optional[str] = Query(None, alias="type"),
        x_signature: str = Header("", alias="x-signature"),
        x_request_id: str = Header("", alias="x-request-id"),
        session: AsyncSession = Depends(get_session),
        store: StoreInfo = Depends(require_store),
    ):
        """
        The notification URL must carry the tenant (?storeId=...); the signed
        manifest uses data.id from the query string when present.
        """
        data_id = str(data_id_q or body.data.get("id") or "")
        if not data_id:
            raise ValidationError("Missing data.id", code="WEBHOOK_INVALID")
        return await PaymentService(session, store.id).handle_webhook(
            x_signature=x_signature,
            x_request_id=x_request_id,
            data_id=data_id,
            topic=topic_q or body.type,
        )
