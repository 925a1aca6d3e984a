# storefront/api/routers/auth_schemas.py
from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, EmailStr, Field


class UserOut(BaseModel):
    id: str
    email: str
    name: str
    phone: Optional[str] = None
    role: str
    store_id: Optional[str] = None


class AuthOut(BaseModel):
    user: UserOut
    token: str
    token_type: str = "bearer"


class RegisterIn(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    phone: Optional[str] = None


class LoginIn(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class ProfileIn(BaseModel):
    name: Optional[str] = None
    phone: Optional[str] = None


class PasswordChangeIn(BaseModel):
    current_password: str
    new_password: str


class ForgotPasswordIn(BaseModel):
    email: EmailStr


class ResetPasswordIn(BaseModel):
    token: str = Field(..., min_length=1)
    new_password: str
