# storefront/api/errors.py
from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import Request
from fastapi.responses import JSONResponse


class BizError(Exception):
    """
    Operational (expected) error raised by services.

    code: stable machine-readable code, e.g. SHIPMENT_EXISTS
    status: HTTP status the API layer answers with
    """

    code = "BIZ_ERROR"
    status = 400

    def __init__(
        self,
        message: str,
        code: str | None = None,
        status: int | None = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        if code:
            self.code = code
        if status:
            self.status = status
        self.message = message
        self.details = details


class ValidationError(BizError):
    code = "VALIDATION_ERROR"
    status = 422


class NotFoundError(BizError):
    code = "NOT_FOUND"
    status = 404


class ConflictError(BizError):
    code = "CONFLICT"
    status = 409


class AuthError(BizError):
    code = "UNAUTHORIZED"
    status = 401


class ForbiddenError(BizError):
    code = "FORBIDDEN"
    status = 403


class UpstreamError(BizError):
    code = "UPSTREAM_ERROR"
    status = 502


def biz_error_handler(_: Request, exc: BizError):
    body: Dict[str, Any] = {"code": exc.code, "message": exc.message}
    if exc.details:
        body["details"] = exc.details
    return JSONResponse(status_code=exc.status, content={"error": body})
