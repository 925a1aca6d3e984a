# storefront/http_problem_handlers.py
from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, List

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from storefront.api.errors import BizError, biz_error_handler
from storefront.api.problem import make_problem

logger = logging.getLogger("storefront")


def _new_trace_id() -> str:
    return f"t_{uuid.uuid4().hex[:12]}"


def _problem_from_http_exc(req: Request, exc: HTTPException) -> Dict[str, Any]:
    """
    Translate HTTPException.detail into the Problem shape.
    Accepted detail forms:
    - str
    - list (validation errors)
    - {"code","message"}
    - {"error_code","message",...} (already a Problem)
    """
    status_code = int(exc.status_code)
    trace_id = _new_trace_id()
    ctx: Dict[str, Any] = {"path": getattr(req.url, "path", ""), "method": req.method}

    d = exc.detail

    if isinstance(d, dict) and "error_code" in d and "message" in d:
        out = dict(d)
        out.setdefault("http_status", status_code)
        out.setdefault("trace_id", trace_id)
        merged = dict(ctx)
        if isinstance(out.get("context"), dict):
            merged.update(out["context"])
        out["context"] = merged
        return out

    if isinstance(d, dict) and "code" in d and "message" in d:
        return make_problem(
            status_code=status_code,
            error_code=str(d.get("code") or "HTTP_ERROR"),
            message=str(d.get("message") or "Request rejected"),
            context=ctx,
            trace_id=trace_id,
        )

    if isinstance(d, list):
        details: List[Dict[str, Any]] = []
        for i, e in enumerate(d):
            reason = str(e.get("msg") or e.get("type") or "invalid") if isinstance(e, dict) else str(e)
            details.append({"type": "validation", "path": f"validation[{i}]", "reason": reason})
        return make_problem(
            status_code=status_code,
            error_code="request_validation_error",
            message="Invalid request parameters",
            context=ctx,
            details=details,
            trace_id=trace_id,
        )

    msg = str(d) if d is not None else "Request rejected"
    return make_problem(
        status_code=status_code,
        error_code="http_error",
        message=msg,
        context=ctx,
        details=[{"type": "state", "reason": msg}],
        trace_id=trace_id,
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(BizError, biz_error_handler)

    @app.exception_handler(Exception)
    async def _unhandled_exc(req: Request, exc: Exception):
        trace_id = _new_trace_id()
        logger.exception("UNHANDLED_EXC[%s]: %s", trace_id, exc)
        content = make_problem(
            status_code=500,
            error_code="internal_error",
            message="Internal error, please retry later",
            context={"path": getattr(req.url, "path", ""), "method": req.method},
            trace_id=trace_id,
        )
        return JSONResponse(status_code=500, content=content)

    @app.exception_handler(RequestValidationError)
    async def _validation_exc(req: Request, exc: RequestValidationError):
        details: List[Dict[str, Any]] = []
        for i, e in enumerate(exc.errors()):
            if not isinstance(e, dict):
                continue
            loc = ".".join(str(x) for x in e.get("loc") or ())
            details.append(
                {
                    "type": "validation",
                    "path": loc or f"validation[{i}]",
                    "reason": str(e.get("msg") or e.get("type") or "invalid"),
                }
            )

        content = make_problem(
            status_code=422,
            error_code="request_validation_error",
            message="Invalid request parameters",
            context={"path": getattr(req.url, "path", ""), "method": req.method},
            details=details,
            trace_id=_new_trace_id(),
        )
        return JSONResponse(status_code=422, content=content)

    @app.exception_handler(HTTPException)
    async def _http_exc(req: Request, exc: HTTPException):
        content = _problem_from_http_exc(req, exc)
        return JSONResponse(status_code=int(exc.status_code), content=content, headers=exc.headers)
