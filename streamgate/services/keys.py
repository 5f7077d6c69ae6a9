from __future__ import annotations

"""
Object key resolution for HLS delivery.

Pure functions, no I/O. Every key is a *trusted* base prefix (taken from the
catalog's `video_url`, or the fixed `videos/{id}/` pattern for processed
videos) joined with a *request-supplied* suffix that has already passed the
guards below.

Layout
------
    videos/V1/master.m3u8            ← VideoRecord.video_url
    videos/V1/720p/playlist.m3u8     ← variant
    videos/V1/720p/seg_001.ts        ← segment
"""

import re
from functools import lru_cache
from typing import Optional

from streamgate.core.config import settings
from streamgate.core.exceptions import GatewayError
from streamgate.schemas.video import VideoRecord

VARIANT_PLAYLIST_NAME = "playlist.m3u8"
PROCESSED_ROOT = "videos/"


@lru_cache(maxsize=8)
def _compile(pattern: str) -> re.Pattern[str]:
    return re.compile(pattern)


# ─────────────────────────────────────────────────────────────
# Guards
# ─────────────────────────────────────────────────────────────
def validate_video_id(video_id: str, *, pattern: Optional[str] = None) -> str:
    """Catalog identifier format check (24-hex ObjectId by default)."""
    if not video_id or not _compile(pattern or settings.CATALOG_ID_PATTERN).fullmatch(video_id):
        raise GatewayError.invalid_identifier()
    return video_id


def validate_segment_name(segment: str, *, extension: Optional[str] = None) -> str:
    """Non-empty, no `..`, ends with the segment extension."""
    ext = extension or settings.SEGMENT_EXTENSION
    if not segment or ".." in segment or not segment.endswith(ext):
        raise GatewayError.invalid_segment_path()
    return segment


def validate_quality(quality: str) -> str:
    """A single path component; optionally restricted to `QUALITY_ALLOWLIST`."""
    if not quality or ".." in quality or "/" in quality or "\\" in quality:
        raise GatewayError.invalid_segment_path("Invalid quality")
    allowed = settings.quality_allowlist
    if allowed and quality not in allowed:
        raise GatewayError.invalid_segment_path("Unsupported quality")
    return quality


def validate_variant_path(variant_path: str) -> str:
    """Relative `.m3u8` path under the master's directory (`720p/playlist.m3u8`)."""
    parts = variant_path.split("/") if variant_path else []
    if (
        not parts
        or not variant_path.endswith(".m3u8")
        or "\\" in variant_path
        or any(p in ("", ".", "..") for p in parts)
    ):
        raise GatewayError.invalid_segment_path("Invalid variant path")
    return variant_path


def _guard_key(key: str) -> str:
    # Last line of defence; suffixes were validated already.
    if not key or ".." in key:
        raise GatewayError.invalid_segment_path()
    return key


# ─────────────────────────────────────────────────────────────
# Resolution
# ─────────────────────────────────────────────────────────────
def base_prefix(video_url: str) -> str:
    """`video_url` up to and including its last `/` ("" when there is none)."""
    idx = video_url.rfind("/")
    return video_url[: idx + 1] if idx >= 0 else ""


def resolve(video: VideoRecord, quality: Optional[str] = None, segment: Optional[str] = None) -> str:
    """Key of the master playlist, a variant playlist, or a segment of `video`."""
    if quality is None:
        if segment is not None:
            raise GatewayError.invalid_segment_path()
        return _guard_key(video.video_url)
    base = base_prefix(video.video_url)
    if segment is None:
        return _guard_key(f"{base}{quality}/{VARIANT_PLAYLIST_NAME}")
    return _guard_key(f"{base}{quality}/{segment}")


def resolve_segment_path(video: VideoRecord, segment_path: str) -> str:
    """Segment addressed relative to the master playlist directory."""
    return _guard_key(f"{base_prefix(video.video_url)}{segment_path}")


def resolve_variant_path(video: VideoRecord, variant_path: str) -> str:
    """Variant playlist addressed relative to the master playlist directory."""
    return _guard_key(f"{base_prefix(video.video_url)}{variant_path}")


def resolve_processed(video_id: str, quality: str, segment: Optional[str] = None) -> str:
    """Deterministic `videos/{id}/{quality}/...` key; no catalog involved."""
    name = segment if segment is not None else VARIANT_PLAYLIST_NAME
    if not video_id or "/" in video_id:
        raise GatewayError.invalid_segment_path()
    return _guard_key(f"{PROCESSED_ROOT}{video_id}/{quality}/{name}")


__all__ = [
    "VARIANT_PLAYLIST_NAME",
    "validate_video_id",
    "validate_segment_name",
    "validate_quality",
    "validate_variant_path",
    "base_prefix",
    "resolve",
    "resolve_segment_path",
    "resolve_variant_path",
    "resolve_processed",
]
