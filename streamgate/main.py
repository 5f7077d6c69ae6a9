# streamgate/main.py
from __future__ import annotations

"""
# StreamGate — Application Entrypoint (FastAPI)

ASGI application factory and lifecycle for the HLS delivery gateway.

## Design Goals
- Deterministic, testable **app factory** (`create_app`) with explicit lifespan.
- Explicit **middleware order**:
  1) strip `Server` header → 2) request id → 3) rate limits → 4) CORS → 5) gzip
  (outermost first).
- Centralized problem+json exception handling.
- Never crash on import when the object store is not configured; the first
  delivery request reports it as `UPSTREAM_UNAVAILABLE` instead.

## Probes
- `/healthz` — liveness (process up).
- `/readyz`  — readiness (best-effort object store HEAD bucket).
- `/metrics` — Prometheus exposition.
"""

import logging
import os
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from starlette.concurrency import run_in_threadpool
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.gzip import GZipMiddleware
from starlette.responses import JSONResponse, Response

# Importing configures Loguru sinks and the stdlib intercept.
from streamgate.core import logger as _logsetup  # noqa: F401
from streamgate.api.v1.routers import router as delivery_router
from streamgate.core.config import settings
from streamgate.core.exception_handlers import (
    gateway_exception_handler,
    global_exception_handler,
    http_exception_handler,
    validation_exception_handler,
)
from streamgate.core.exceptions import GatewayError
from streamgate.core.limiter import install_rate_limiter, rate_limit_exempt
from streamgate.middleware.request_id import RequestIDMiddleware
from streamgate.utils.aws import S3Client, S3StorageError

logger = logging.getLogger("streamgate")


# ─────────────────────────────────────────────────────────────────────────────
# 🔄 Lifespan: startup & shutdown
# ─────────────────────────────────────────────────────────────────────────────
@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    logger.info(
        "✅ %s starting up (env=%s, bucket=%s, segment_delivery=%s)",
        settings.PROJECT_NAME,
        settings.ENV,
        settings.S3_BUCKET_NAME or "<unset>",
        settings.UNIFIED_SEGMENT_DELIVERY,
    )
    if not settings.S3_BUCKET_NAME:
        logger.warning("S3_BUCKET_NAME is not set; delivery routes will answer 502 until configured")
    try:
        yield
    finally:
        logger.info("🛑 %s shutting down", settings.PROJECT_NAME)


def _configure_cors(app: FastAPI) -> None:
    """Strict app-wide CORS from `FRONTEND_ORIGINS`; segments add their own `*`."""
    origins = settings.frontend_origins_list
    if not origins and not settings.is_production:
        origins = [
            "http://localhost:3000",
            "http://127.0.0.1:3000",
            "http://localhost:5173",
            "http://127.0.0.1:5173",
        ]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["GET", "HEAD", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "X-Request-ID", "Range"],
        expose_headers=["Content-Length", "X-Request-ID"],
        max_age=3600,
    )


# ─────────────────────────────────────────────────────────────────────────────
# 🏗️ App factory
# ─────────────────────────────────────────────────────────────────────────────
def create_app() -> FastAPI:
    """
    Build and configure the FastAPI app instance.

    Returns:
        FastAPI: application with middleware, exception handlers, delivery
        routers under `settings.API_PREFIX`, and probe endpoints.
    """
    enable_docs = settings.ENABLE_DOCS
    app = FastAPI(
        title=settings.PROJECT_NAME,
        version=settings.VERSION,
        docs_url="/docs" if enable_docs else None,
        redoc_url="/redoc" if enable_docs else None,
        openapi_url="/openapi.json" if enable_docs else None,
        lifespan=lifespan,
    )

    # ── Middlewares (order matters; last added runs first) ──────────────────
    app.add_middleware(GZipMiddleware, minimum_size=1024)
    _configure_cors(app)
    if install_rate_limiter(app):
        app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)  # type: ignore[arg-type]
    app.add_middleware(RequestIDMiddleware)

    @app.middleware("http")
    async def _strip_server_header(request: Request, call_next: Callable) -> Response:
        """Remove the `Server` header to avoid leaking implementation details."""
        response: Response = await call_next(request)
        if "server" in response.headers:
            del response.headers["server"]
        return response

    # ── Exception handlers ──────────────────────────────────────────────────
    app.add_exception_handler(GatewayError, gateway_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(HTTPException, http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, validation_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, global_exception_handler)  # type: ignore[arg-type]

    # ── Routers ─────────────────────────────────────────────────────────────
    app.include_router(delivery_router, prefix=settings.API_PREFIX)

    # ── Meta endpoints ──────────────────────────────────────────────────────
    @app.get("/healthz", tags=["meta"])
    @rate_limit_exempt()
    async def healthz() -> dict[str, bool]:
        """Liveness probe. No external checks."""
        return {"ok": True}

    @app.get("/readyz", tags=["meta"])
    @rate_limit_exempt()
    async def readyz() -> JSONResponse:
        """Readiness probe: is the object store reachable?"""
        store_ok = False
        if settings.S3_BUCKET_NAME:
            try:
                store = S3Client()
                store_ok = await run_in_threadpool(store.ping)
            except S3StorageError as e:
                logger.warning("readiness: object store client unavailable: %s", e)
        body = {"ready": store_ok, "checks": {"object_store": store_ok}}
        return JSONResponse(body, status_code=200 if store_ok else 503)

    @app.get("/metrics", include_in_schema=False)
    @rate_limit_exempt()
    async def metrics() -> Response:
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    @app.get("/", include_in_schema=False)
    async def root() -> JSONResponse:
        """Minimal root that points to docs (when enabled)."""
        return JSONResponse({"name": settings.PROJECT_NAME, "docs": app.docs_url or "", "version": settings.VERSION})

    return app


# ─────────────────────────────────────────────────────────────────────────────
# 🚀 Module-level ASGI app for Uvicorn
# ─────────────────────────────────────────────────────────────────────────────
app = create_app()
__all__ = ["create_app", "app"]


# Local dev runner (prefer: `uvicorn streamgate.main:app --reload`)
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "streamgate.main:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", "8000")),
        reload=os.getenv("RELOAD", "1") == "1",
        log_level=os.getenv("LOG_LEVEL", "info").lower(),
    )
