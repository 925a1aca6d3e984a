# storefront/services/auth_service.py
from __future__ import annotations

import logging
from datetime import timedelta
from typing import Any, Dict, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.api.errors import AuthError, ConflictError, NotFoundError, ValidationError
from storefront.core.security import (
    create_access_token,
    get_password_hash,
    new_reset_token,
    verify_password,
)
from storefront.db.base import utcnow
from storefront.models import User
from storefront.models.enums import UserRole
from storefront.services.email_service import EmailService, get_email_service, send_best_effort

log = logging.getLogger("storefront.auth")

MIN_PASSWORD_LEN = 6
RESET_TOKEN_TTL = timedelta(hours=1)


def user_public(user: User) -> Dict[str, Any]:
    return {
        "id": user.id,
        "email": user.email,
        "name": user.name,
        "phone": user.phone,
        "role": user.role,
        "store_id": user.store_id,
    }


def _token_for(user: User) -> str:
    return create_access_token({"sub": user.id, "store_id": user.store_id, "role": user.role})


def _check_password(password: str) -> None:
    if len(password or "") < MIN_PASSWORD_LEN:
        raise ValidationError(
            f"La contraseña debe tener al menos {MIN_PASSWORD_LEN} caracteres", code="WEAK_PASSWORD"
        )


class AuthService:
    """
    Store-scoped accounts. The same email may exist in several stores;
    super_admin accounts can log in through any store.
    """

    def __init__(self, session: AsyncSession, *, email: EmailService | None = None) -> None:
        self.session = session
        self.email = email or get_email_service()

    async def _find(self, email: str, store_id: Optional[str]) -> Optional[User]:
        return (
            await self.session.execute(
                select(User).where(User.email == email.lower(), User.store_id == store_id).limit(1)
            )
        ).scalar_one_or_none()

    async def register(self, *, email: str, password: str, name: str, store_id: str, phone: str | None = None):
        email = (email or "").strip().lower()
        if not email or not (name or "").strip():
            raise ValidationError("Email y nombre son requeridos", code="VALIDATION_ERROR")
        _check_password(password)

        if await self._find(email, store_id) is not None:
            raise ConflictError("El email ya está registrado", code="EMAIL_TAKEN")

        # first account of a store owns it
        existing = (
            await self.session.execute(select(func.count()).select_from(User).where(User.store_id == store_id))
        ).scalar_one()
        role = UserRole.ADMIN.value if int(existing) == 0 else UserRole.CUSTOMER.value

        user = User(
            store_id=store_id,
            email=email,
            password_hash=get_password_hash(password),
            name=name.strip(),
            phone=phone,
            role=role,
        )
        self.session.add(user)
        await self.session.commit()
        log.info("user registered id=%s store=%s role=%s", user.id, store_id, role)
        return {"user": user_public(user), "token": _token_for(user)}

    async def login(self, *, email: str, password: str, store_id: Optional[str]) -> Dict[str, Any]:
        email = (email or "").strip().lower()
        user = await self._find(email, store_id) if store_id else None
        if user is None:
            # platform operators log in from any storefront
            user = (
                await self.session.execute(
                    select(User).where(User.email == email, User.role == UserRole.SUPER_ADMIN.value).limit(1)
                )
            ).scalar_one_or_none()

        if user is None or not verify_password(password, user.password_hash):
            raise AuthError("Email o contraseña incorrectos", code="INVALID_CREDENTIALS")

        return {"user": user_public(user), "token": _token_for(user)}

    async def update_profile(self, user: User, *, name: str | None = None, phone: str | None = None) -> Dict[str, Any]:
        if name is not None:
            if not name.strip():
                raise ValidationError("El nombre no puede estar vacío")
            user.name = name.strip()
        if phone is not None:
            user.phone = phone.strip() or None
        await self.session.commit()
        return user_public(user)

    async def change_password(self, user: User, *, current_password: str, new_password: str) -> None:
        if not verify_password(current_password, user.password_hash):
            raise AuthError("La contraseña actual es incorrecta", code="INVALID_CREDENTIALS")
        _check_password(new_password)
        user.password_hash = get_password_hash(new_password)
        await self.session.commit()

    async def forgot_password(self, *, email: str, store_id: Optional[str]) -> None:
        """Always succeeds from the caller's view (no account enumeration)."""
        user = await self._find((email or "").strip().lower(), store_id)
        if user is None:
            log.info("password reset requested for unknown email in store %s", store_id)
            return

        token = new_reset_token()
        user.reset_token = token
        user.reset_token_expires = utcnow() + RESET_TOKEN_TTL
        await self.session.commit()
        await send_best_effort(self.email.send_password_reset(user.email, token), "password_reset")

    async def reset_password(self, *, token: str, new_password: str) -> None:
        _check_password(new_password)
        user = (
            await self.session.execute(select(User).where(User.reset_token == token).limit(1))
        ).scalar_one_or_none()
        if user is None or user.reset_token_expires is None:
            raise NotFoundError("Token inválido o expirado", code="RESET_TOKEN_INVALID")

        expires = user.reset_token_expires
        if expires.tzinfo is None:
            expires = expires.replace(tzinfo=utcnow().tzinfo)
        if expires <= utcnow():
            raise NotFoundError("Token inválido o expirado", code="RESET_TOKEN_INVALID")

        user.password_hash = get_password_hash(new_password)
        user.reset_token = None
        user.reset_token_expires = None
        await self.session.commit()
