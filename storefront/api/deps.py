# storefront/api/deps.py
from __future__ import annotations

from typing import AsyncGenerator, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.security import decode_access_token
from storefront.db.session import get_session as _get_session
from storefront.models import User
from storefront.models.enums import ADMIN_ROLES


# ---------------------------
# async session (business use)
# ---------------------------


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI-friendly wrapper; tests override this dependency.
    """
    async for session in _get_session():
        yield session


# ---------------------------
# current user
# ---------------------------

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)


async def _user_from_token(session: AsyncSession, token: Optional[str]) -> Optional[User]:
    token = (token or "").strip()
    if not token:
        return None
    payload = decode_access_token(token)
    if not payload or not payload.get("sub"):
        return None
    return await session.get(User, str(payload["sub"]))


async def get_optional_user(
    token: Optional[str] = Depends(oauth2_scheme),
    session: AsyncSession = Depends(get_session),
) -> Optional[User]:
    """Bearer token is optional; invalid tokens count as anonymous."""
    return await _user_from_token(session, token)


async def get_current_user(
    token: Optional[str] = Depends(oauth2_scheme),
    session: AsyncSession = Depends(get_session),
) -> User:
    """
    Strict current user:

    - Authorization: Bearer <token> required
    - invalid / expired token or unknown user -> 401
    """
    if not (token or "").strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"code": "AUTH_REQUIRED", "message": "Not authenticated"},
            headers={"WWW-Authenticate": "Bearer"},
        )

    user = await _user_from_token(session, token)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"code": "TOKEN_INVALID", "message": "Invalid or expired token"},
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


async def require_admin(user: User = Depends(get_current_user)) -> User:
    if user.role not in ADMIN_ROLES:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={"code": "ADMIN_REQUIRED", "message": "Admin access required"},
        )
    return user


async def require_super_admin(user: User = Depends(get_current_user)) -> User:
    if user.role != "super_admin":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={"code": "SUPER_ADMIN_REQUIRED", "message": "Super admin access required"},
        )
    return user
