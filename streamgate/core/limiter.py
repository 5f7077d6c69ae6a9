from __future__ import annotations

"""
StreamGate — HTTP Rate Limiting (SlowAPI)
=========================================

The limiter is a collaborator of the delivery routes, never part of their
logic: `SlowAPIMiddleware` applies the default limits to every route, keyed
per user (when upstream auth sets `request.state.user_id`) or per client IP.

Its counter store is chosen by URI so the same code runs single- or
multi-instance:

- `memory://`           in-process counters (single instance, default)
- `redis://host:port/n` shared counters (multi-instance)

Expiry of old windows is owned by the `limits` storage backend.

Environment
-----------
RATE_LIMIT_ENABLED           default: "true"
DEFAULT_RATE_LIMIT           default: "600/minute" (segment fetches are chatty)
RATELIMIT_STORAGE_URI        default: "memory://"
RATELIMIT_STRATEGY           default: "moving-window"
RATE_LIMIT_TEST_BYPASS       default: "" (truthy to skip installing in tests/CI)
RATE_LIMIT_NAMESPACE         default: "" (prefix for limiter keys)

Usage
-----
    install_rate_limiter(app)

    @app.get("/healthz")
    @rate_limit_exempt()
    async def healthz(): ...
"""

import os
from typing import Callable, List

from dotenv import load_dotenv
from loguru import logger
from slowapi import Limiter
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address
from starlette.requests import Request

load_dotenv()

DEFAULT_LIMIT = os.getenv("DEFAULT_RATE_LIMIT", "600/minute").strip()
STORAGE_URI = os.getenv("RATELIMIT_STORAGE_URI", "").strip() or "memory://"
STRATEGY = os.getenv("RATELIMIT_STRATEGY", "moving-window").strip()
NAMESPACE = os.getenv("RATE_LIMIT_NAMESPACE", "").strip()


def _truthy(name: str, default: str = "") -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


def _client_ip(request: Request) -> str:
    """First X-Forwarded-For hop, then X-Real-IP, then the socket peer."""
    xff = request.headers.get("x-forwarded-for")
    if xff:
        ip = xff.split(",")[0].strip()
        if ip:
            return ip
    xri = request.headers.get("x-real-ip")
    if xri:
        return xri.strip()
    return get_remote_address(request) or "unknown"


def get_rate_limit_key(request: Request) -> str:
    """`user:<id>` when upstream auth set `request.state.user_id`, else `ip:<addr>`."""
    user_id = getattr(request.state, "user_id", None)
    key = f"user:{user_id}" if user_id else f"ip:{_client_ip(request)}"
    return f"{NAMESPACE}:{key}" if NAMESPACE else key


def _default_limits() -> List[str]:
    return [chunk.strip() for chunk in DEFAULT_LIMIT.split(",") if chunk.strip()]


limiter = Limiter(
    key_func=get_rate_limit_key,
    default_limits=_default_limits(),
    headers_enabled=True,
    storage_uri=STORAGE_URI,
    strategy=STRATEGY,
)


def rate_limit_exempt() -> Callable:
    """Explicitly exempt a route from limiting."""
    return limiter.exempt


def install_rate_limiter(app) -> bool:
    """
    Attach SlowAPI middleware.

    Returns False (nothing installed) when `RATE_LIMIT_ENABLED` is off or
    `RATE_LIMIT_TEST_BYPASS` is on.
    """
    if not _truthy("RATE_LIMIT_ENABLED", "true"):
        logger.info("RateLimiter disabled by env; middleware not installed")
        return False
    if _truthy("RATE_LIMIT_TEST_BYPASS"):
        logger.info("RateLimiter bypassed for tests; middleware not installed")
        return False

    app.state.limiter = limiter
    app.add_middleware(SlowAPIMiddleware)
    # Never log credentials embedded in a redis:// URI.
    logger.info(f"SlowAPI middleware installed | default={_default_limits()} | storage={STORAGE_URI.split('@')[-1]}")
    return True
