"""
🧭 StreamGate • Delivery Router Aggregator
=========================================

Quick usage
-----------
    from streamgate.api.v1.routers import build_router
    app.include_router(build_router(), prefix=settings.API_PREFIX)
"""

from fastapi import APIRouter

from .direct import router as direct_router
from .hls import router as hls_router
from .videos import router as videos_router


def build_router() -> APIRouter:
    """Compose the delivery surface (`/videos/...`, `/hls...`, `/direct-video/...`)."""
    api = APIRouter()
    api.include_router(videos_router)
    api.include_router(hls_router)
    api.include_router(direct_router)
    return api


router = build_router()

__all__ = ["router", "build_router", "videos_router", "hls_router", "direct_router"]
