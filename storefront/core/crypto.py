# storefront/core/crypto.py
from __future__ import annotations

import base64
import hashlib
from functools import lru_cache

from cryptography.fernet import Fernet, InvalidToken

from storefront.core.config import get_settings

__all__ = ["encrypt_secret", "decrypt_secret", "InvalidToken"]


@lru_cache
def _fernet() -> Fernet:
    s = get_settings()
    key = s.ENCRYPTION_KEY.strip()
    if not key:
        if s.ENV != "dev":
            raise RuntimeError("ENCRYPTION_KEY is required outside dev")
        # dev only: derive a stable key from JWT_SECRET
        key = base64.urlsafe_b64encode(hashlib.sha256(s.JWT_SECRET.encode("utf-8")).digest()).decode()
    return Fernet(key)


def encrypt_secret(secret: str) -> str:
    return _fernet().encrypt(secret.encode("utf-8")).decode("utf-8")


def decrypt_secret(encrypted_value: str) -> str:
    return _fernet().decrypt(encrypted_value.encode("utf-8")).decode("utf-8")
