from __future__ import annotations

"""
StreamGate · HTTP Utilities
===========================

Response builders shared by the delivery routers:

- Playlists → `application/vnd.apple.mpegurl`, short private cache
- Segments  → streamed body, long private cache, permissive CORS
- Redirects → 307 to a signed URL, never cached

Notes
-----
• Segment bodies stream straight from the object store; nothing is buffered
  beyond one chunk.
• Cache lifetimes and the CORS origin come from `streamgate.core.config`.
"""

from typing import Optional

from fastapi import Response, status
from fastapi.responses import RedirectResponse, StreamingResponse

from streamgate.core.config import settings
from streamgate.schemas.video import SignedURL
from streamgate.services.fetcher import FetchedObject

PLAYLIST_MEDIA_TYPE = "application/vnd.apple.mpegurl"

SEGMENT_CORS_HEADERS = {
    "Access-Control-Allow-Methods": "GET, OPTIONS",
    "Access-Control-Allow-Headers": "Origin, X-Requested-With, Content-Type, Accept, Range",
}

__all__ = [
    "PLAYLIST_MEDIA_TYPE",
    "set_private_cache",
    "playlist_response",
    "segment_response",
    "redirect_response",
]


def set_private_cache(response: Response, *, seconds: int) -> None:
    """`private, max-age=<seconds>`, or `no-store` when `seconds <= 0`."""
    if seconds <= 0:
        response.headers["Cache-Control"] = "no-store"
        response.headers.setdefault("Pragma", "no-cache")
        return
    response.headers["Cache-Control"] = f"private, max-age={seconds}"


def playlist_response(text: str, *, cache_seconds: Optional[int] = None) -> Response:
    response = Response(content=text, media_type=PLAYLIST_MEDIA_TYPE)
    set_private_cache(response, seconds=settings.PLAYLIST_CACHE_SECONDS if cache_seconds is None else cache_seconds)
    return response


def segment_response(obj: FetchedObject, *, cache_seconds: Optional[int] = None) -> StreamingResponse:
    """Stream a fetched segment with cache + CORS headers.

    The body iterator closes the upstream object when the client finishes or
    disconnects.
    """
    headers = {"Access-Control-Allow-Origin": settings.SEGMENT_CORS_ORIGIN, **SEGMENT_CORS_HEADERS}
    if obj.content_length is not None:
        headers["Content-Length"] = str(obj.content_length)
    response = StreamingResponse(obj.iter_bytes(), media_type=obj.content_type, headers=headers)
    set_private_cache(response, seconds=settings.SEGMENT_CACHE_SECONDS if cache_seconds is None else cache_seconds)
    return response


def redirect_response(signed: SignedURL) -> RedirectResponse:
    response = RedirectResponse(url=signed.url, status_code=status.HTTP_307_TEMPORARY_REDIRECT)
    set_private_cache(response, seconds=0)
    return response
