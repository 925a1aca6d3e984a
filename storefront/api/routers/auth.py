# storefront/api/routers/auth.py
from __future__ import annotations

from fastapi import APIRouter

from storefront.api.routers import auth_routes, auth_routes_me
from storefront.api.routers.auth_schemas import (
    AuthOut,
    LoginIn,
    PasswordChangeIn,
    RegisterIn,
    UserOut,
)

router = APIRouter(prefix="/api/auth", tags=["auth"])


def _register_all_routes() -> None:
    auth_routes.register(router)
    auth_routes_me.register(router)


_register_all_routes()

__all__ = [
    "router",
    "AuthOut",
    "LoginIn",
    "RegisterIn",
    "PasswordChangeIn",
    "UserOut",
]
