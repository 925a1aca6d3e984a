# storefront/api/routers/auth_routes.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.api.deps import get_session
from storefront.api.routers.auth_schemas import (
    AuthOut,
    ForgotPasswordIn,
    LoginIn,
    RegisterIn,
    ResetPasswordIn,
)
from storefront.api.store_resolver import StoreInfo, require_store, resolve_store
from storefront.services.auth_service import AuthService


def register(router: APIRouter) -> None:
    @router.post("/register", response_model=AuthOut, status_code=status.HTTP_201_CREATED)
    async def register_user(
        body: RegisterIn,
        session: AsyncSession = Depends(get_session),
        store: StoreInfo = Depends(require_store),
    ) -> AuthOut:
        result = await AuthService(session).register(
            email=body.email,
            password=body.password,
            name=body.name,
            phone=body.phone,
            store_id=store.id,
        )
        return AuthOut(**result)

    @router.post("/login", response_model=AuthOut)
    async def login(
        body: LoginIn,
        session: AsyncSession = Depends(get_session),
        store: Optional[StoreInfo] = Depends(resolve_store),
    ) -> AuthOut:
        result = await AuthService(session).login(
            email=body.email,
            password=body.password,
            store_id=store.id if store else None,
        )
        return AuthOut(**result)

    @router.post("/forgot-password")
    async def forgot_password(
        body: ForgotPasswordIn,
        session: AsyncSession = Depends(get_session),
        store: Optional[StoreInfo] = Depends(resolve_store),
    ):
        await AuthService(session).forgot_password(email=body.email, store_id=store.id if store else None)
        return {"success": True, "message": "Si el email existe, recibirás un enlace para restablecer tu contraseña"}

    @router.post("/reset-password")
    async def reset_password(
        body: ResetPasswordIn,
        session: AsyncSession = Depends(get_session),
    ):
        await AuthService(session).reset_password(token=body.token, new_password=body.new_password)
        return {"success": True, "message": "Contraseña actualizada"}
