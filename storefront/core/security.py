"""
Security helpers (single entry point):

- PyJWT (HS256) for access tokens
- passlib[pbkdf2_sha256] for password hashing
- outside dev, a default JWT_SECRET refuses to start
"""

from __future__ import annotations

import secrets
import time
from typing import Any, Dict, Optional

import jwt
from passlib.context import CryptContext

from storefront.core.config import AppSettings, get_settings

_JWT_ALG = "HS256"

_DEV_SECRETS = {
    "",
    "dev-temp-secret",
    "dev-secret-change-me",
}

_pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def ensure_secure_settings(settings: AppSettings | None = None) -> None:
    s = settings or get_settings()
    if s.ENV != "dev" and s.JWT_SECRET in _DEV_SECRETS:
        raise RuntimeError(
            "SECURITY ERROR: JWT_SECRET is not properly configured.\n"
            f"ENV = {s.ENV!r}\n"
            "Set a strong JWT_SECRET via environment variable or .env file."
        )


def get_password_hash(password: str) -> str:
    return _pwd_context.hash(password)


def verify_password(plain_password: str, password_hash: str) -> bool:
    try:
        return _pwd_context.verify(plain_password, password_hash)
    except (ValueError, TypeError):
        return False


def create_access_token(data: Dict[str, Any], expires_minutes: Optional[int] = None) -> str:
    s = get_settings()
    payload = dict(data)
    payload["exp"] = int(time.time()) + 60 * (expires_minutes or s.ACCESS_TOKEN_EXPIRE_MINUTES)
    return jwt.encode(payload, s.JWT_SECRET, algorithm=_JWT_ALG)


def decode_access_token(token: str) -> Optional[Dict[str, Any]]:
    try:
        out = jwt.decode(token, get_settings().JWT_SECRET, algorithms=[_JWT_ALG])
    except jwt.PyJWTError:
        return None
    return out if isinstance(out, dict) else None


def new_reset_token() -> str:
    return secrets.token_hex(32)
