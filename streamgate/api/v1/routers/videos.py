from __future__ import annotations

"""
StreamGate • Video Delivery (path-style routes)
===============================================

Route Index
-----------
- GET /videos/{video_id}/stream                                 → master, signed refs
- GET /videos/processed/{video_id}/{quality}/playlist.m3u8      → variant, proxy refs (no catalog)
- GET /videos/processed/{video_id}/{quality}/{segment}          → segment bytes (no catalog)
- GET /videos/v1/{video_id}/proxy-stream                        → master, proxy refs
- GET /videos/v1/{video_id}/segments/{segment_path}             → segment bytes
- GET /videos/v1/{video_id}/{quality}/playlist.m3u8             → variant, proxy refs
- GET /videos/v1/{video_id}/{quality}/{segment}                 → segment bytes

Declaration order matters: the literal `playlist.m3u8` and `segments/` routes
must be registered before the catch-all `/{quality}/{segment}` shapes.

Security
--------
- The processed family accepts any identifier shape and skips the catalog.
  It is a lower-trust surface and must be fronted by its own access control.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Response
from fastapi.responses import StreamingResponse

from streamgate.api.dependencies import get_gateway, get_principal
from streamgate.api.http_utils import playlist_response, segment_response
from streamgate.schemas.video import Principal
from streamgate.services.gateway import HlsGateway

router = APIRouter(prefix="/videos", tags=["Video Delivery"])
__all__ = ["router"]


# ─────────────────────────────────────────────────────────────────────────────
# 🎬 Master stream (signed-URL mode)
# ─────────────────────────────────────────────────────────────────────────────

@router.get("/{video_id}/stream", summary="Master playlist with signed variant URLs")
async def stream_master(
    video_id: str,
    gateway: HlsGateway = Depends(get_gateway),
    principal: Optional[Principal] = Depends(get_principal),
) -> Response:
    return playlist_response(await gateway.master_signed(video_id, principal))


# ─────────────────────────────────────────────────────────────────────────────
# 🏭 Processed videos (deterministic keys, no catalog)
# ─────────────────────────────────────────────────────────────────────────────

@router.get("/processed/{video_id}/{quality}/playlist.m3u8", summary="Processed variant playlist")
async def processed_variant(
    video_id: str,
    quality: str,
    gateway: HlsGateway = Depends(get_gateway),
) -> Response:
    return playlist_response(await gateway.processed_variant(video_id, quality))


@router.get("/processed/{video_id}/{quality}/{segment}", summary="Processed segment bytes")
async def processed_segment(
    video_id: str,
    quality: str,
    segment: str,
    gateway: HlsGateway = Depends(get_gateway),
) -> StreamingResponse:
    return segment_response(await gateway.processed_segment(video_id, quality, segment))


# ─────────────────────────────────────────────────────────────────────────────
# 🔁 v1 proxy family (catalog-backed)
# ─────────────────────────────────────────────────────────────────────────────

@router.get("/v1/{video_id}/proxy-stream", summary="Master playlist with proxy variant URLs")
async def proxy_stream_master(
    video_id: str,
    gateway: HlsGateway = Depends(get_gateway),
    principal: Optional[Principal] = Depends(get_principal),
) -> Response:
    return playlist_response(await gateway.master_proxy(video_id, principal))


@router.get("/v1/{video_id}/segments/{segment_path}", summary="Segment next to the master playlist")
async def proxy_segment(
    video_id: str,
    segment_path: str,
    gateway: HlsGateway = Depends(get_gateway),
    principal: Optional[Principal] = Depends(get_principal),
) -> StreamingResponse:
    return segment_response(await gateway.proxy_segment(video_id, segment_path, principal))


@router.get("/v1/{video_id}/{quality}/playlist.m3u8", summary="Variant playlist with proxy segment URLs")
async def variant_playlist(
    video_id: str,
    quality: str,
    gateway: HlsGateway = Depends(get_gateway),
    principal: Optional[Principal] = Depends(get_principal),
) -> Response:
    return playlist_response(await gateway.variant(video_id, quality, principal))


@router.get("/v1/{video_id}/{quality}/{segment}", summary="Segment bytes")
async def variant_segment(
    video_id: str,
    quality: str,
    segment: str,
    gateway: HlsGateway = Depends(get_gateway),
    principal: Optional[Principal] = Depends(get_principal),
) -> StreamingResponse:
    return segment_response(await gateway.segment(video_id, quality, segment, principal))
