from __future__ import annotations

"""
StreamGate • HLS routes
=======================

Route Index
-----------
- GET /hls?videoId=<id>[&resolution=<q>[&segment=<name>]]   → unified route
- GET /hls/stream/{video_id}                                 → master, variant refs → playlist route below
- GET /hls/stream/playlist/{video_id}/{quality}/playlist.m3u8 → variant, signed segment URLs

The unified route serves all three playlist levels; the gateway classifies
the request by which query parameters are present:

- no resolution      → master, variant refs point back at this route
- resolution         → variant, segment refs are signed object URLs
- resolution+segment → segment bytes (or a 307 to a signed URL when
                       `UNIFIED_SEGMENT_DELIVERY=redirect`)
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Response

from streamgate.api.dependencies import get_gateway, get_principal
from streamgate.api.http_utils import playlist_response, redirect_response, segment_response
from streamgate.schemas.video import Principal
from streamgate.services.gateway import HlsGateway, PlaylistResult, RedirectResult

router = APIRouter(tags=["HLS"])
__all__ = ["router"]


@router.get("/hls", summary="Unified HLS playlist / segment delivery")
async def unified_hls(
    video_id: str = Query(..., alias="videoId"),
    resolution: Optional[str] = Query(None),
    segment: Optional[str] = Query(None),
    gateway: HlsGateway = Depends(get_gateway),
    principal: Optional[Principal] = Depends(get_principal),
) -> Response:
    result = await gateway.handle(video_id, resolution, segment, principal)
    if isinstance(result, PlaylistResult):
        return playlist_response(result.text)
    if isinstance(result, RedirectResult):
        return redirect_response(result.signed)
    return segment_response(result.obj)


@router.get("/hls/stream/{video_id}", summary="Master playlist routed through the HLS playlist endpoint")
async def hls_stream_master(
    video_id: str,
    gateway: HlsGateway = Depends(get_gateway),
    principal: Optional[Principal] = Depends(get_principal),
) -> Response:
    return playlist_response(await gateway.stream_master(video_id, principal))


@router.get(
    "/hls/stream/playlist/{video_id}/{quality}/playlist.m3u8",
    summary="Variant playlist with signed segment URLs",
)
async def hls_stream_variant(
    video_id: str,
    quality: str,
    gateway: HlsGateway = Depends(get_gateway),
    principal: Optional[Principal] = Depends(get_principal),
) -> Response:
    return playlist_response(await gateway.signed_variant(video_id, quality, principal))
