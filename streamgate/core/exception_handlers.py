from __future__ import annotations

"""
Problem+JSON exception handlers (RFC 7807).

`streamgate.main.create_app` installs these. Every error is rendered as
application/problem+json with a stable schema; gateway errors add their
machine-readable `code`.
"""

from typing import Any, Dict, Optional

from fastapi import Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger
from starlette.exceptions import HTTPException as StarletteHTTPException

from streamgate.core.exceptions import GatewayError
from streamgate.core.metrics import inc_gateway_error
from streamgate.middleware.request_id import get_request_id


def _problem(
    title: str,
    detail: str,
    status_code: int,
    request: Request,
    *,
    code: Optional[str] = None,
    extra: Optional[Dict[str, Any]] = None,
) -> JSONResponse:
    content: Dict[str, Any] = {
        "type": "about:blank",
        "title": title,
        "detail": detail,
        "status": status_code,
        "instance": str(request.url.path),
        "request_id": get_request_id(request) or "N/A",
    }
    if code:
        content["code"] = code
    if extra:
        content.update(extra)
    return JSONResponse(status_code=status_code, content=content, media_type="application/problem+json")


async def gateway_exception_handler(request: Request, exc: GatewayError) -> JSONResponse:  # type: ignore
    inc_gateway_error(exc.code)
    if exc.status_code >= 500:
        logger.bind(code=exc.code, details=exc.details).error(f"{exc.code} on {request.url.path}: {exc.message}")
    else:
        logger.bind(code=exc.code).info(f"{exc.code} on {request.url.path}: {exc.message}")
    return _problem(exc.title, exc.message, exc.status_code, request, code=exc.code)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:  # type: ignore
    title = exc.__class__.__name__.replace("Exception", "").strip() or "Error"
    detail = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
    response = _problem(title, detail, exc.status_code, request)
    for k, v in (getattr(exc, "headers", None) or {}).items():
        response.headers[k] = v
    return response


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:  # type: ignore
    return _problem(
        "Validation error",
        "Validation error",
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        request,
        code="VALIDATION_ERROR",
        extra={"errors": jsonable_encoder(exc.errors())},
    )


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:  # type: ignore
    # Full detail server-side only.
    logger.opt(exception=exc).error(f"Unhandled error on {request.url.path}")
    inc_gateway_error("INTERNAL_ERROR")
    return _problem(
        "Internal Server Error",
        "An unexpected error occurred.",
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        request,
        code="INTERNAL_ERROR",
    )


__all__ = [
    "gateway_exception_handler",
    "http_exception_handler",
    "validation_exception_handler",
    "global_exception_handler",
]
