from __future__ import annotations

"""
StreamGate • Direct Video (signed URLs only)
============================================

Route Index
-----------
- GET /direct-video/{video_id}/master                → master, signed variant URLs
- GET /direct-video/{video_id}/variant/{variant_path} → variant, signed segment URLs

The client talks to the object store for everything after the playlists.
`variant_path` is relative to the master's directory (`720p/playlist.m3u8`).
"""

from typing import Optional

from fastapi import APIRouter, Depends, Response

from streamgate.api.dependencies import get_gateway, get_principal
from streamgate.api.http_utils import playlist_response
from streamgate.schemas.video import Principal
from streamgate.services.gateway import HlsGateway

router = APIRouter(prefix="/direct-video", tags=["Direct Video"])
__all__ = ["router"]


@router.get("/{video_id}/master", summary="Master playlist with signed variant URLs")
async def direct_master(
    video_id: str,
    gateway: HlsGateway = Depends(get_gateway),
    principal: Optional[Principal] = Depends(get_principal),
) -> Response:
    return playlist_response(await gateway.master_signed(video_id, principal))


@router.get("/{video_id}/variant/{variant_path:path}", summary="Variant playlist with signed segment URLs")
async def direct_variant(
    video_id: str,
    variant_path: str,
    gateway: HlsGateway = Depends(get_gateway),
    principal: Optional[Principal] = Depends(get_principal),
) -> Response:
    return playlist_response(await gateway.direct_variant(video_id, variant_path, principal))
