# storefront/api/routers/auth_routes_me.py
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.api.deps import get_current_user, get_session
from storefront.api.routers.auth_schemas import PasswordChangeIn, ProfileIn, UserOut
from storefront.models import User
from storefront.services.auth_service import AuthService, user_public


def register(router: APIRouter) -> None:
    @router.get("/me", response_model=UserOut)
    async def me(user: User = Depends(get_current_user)) -> UserOut:
        return UserOut(**user_public(user))

    @router.put("/profile", response_model=UserOut)
    async def update_profile(
        body: ProfileIn,
        session: AsyncSession = Depends(get_session),
        user: User = Depends(get_current_user),
    ) -> UserOut:
        data = await AuthService(session).update_profile(user, name=body.name, phone=body.phone)
        return UserOut(**data)

    @router.put("/password")
    async def change_password(
        body: PasswordChangeIn,
        session: AsyncSession = Depends(get_session),
        user: User = Depends(get_current_user),
    ):
        await AuthService(session).change_password(
            user,
            current_password=body.current_password,
            new_password=body.new_password,
        )
        return {"success": True}
