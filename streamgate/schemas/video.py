# streamgate/schemas/video.py
from __future__ import annotations

"""
Pydantic schemas for video delivery — StreamGate
================================================

Models shared by the catalog, the access gate and the gateway.

Notes
-----
- `VideoRecord` accepts the catalog's camelCase keys (`videoUrl`, `courseId`,
  `thumbnailUrl`) and is frozen: the gateway never mutates it.
- `SignedURL.url` is a bearer capability. Never log it.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class RequestShape(str, Enum):
    """Which playlist level (or segment) an inbound request targets."""

    MASTER = "MASTER"
    VARIANT = "VARIANT"
    SEGMENT = "SEGMENT"


class VideoRecord(BaseModel):
    """Catalog entry for one video.

    Fields
    ------
    id
        Logical catalog identifier (24-hex ObjectId in the default catalog).
    video_url
        Object key of the HLS master playlist, e.g. `videos/V1/master.m3u8`.
    course_id
        Owning course, used by access decisions.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(..., min_length=1)
    video_url: str = Field(..., alias="videoUrl", min_length=1)
    course_id: str = Field(..., alias="courseId")
    title: str = ""
    duration: Optional[int] = Field(None, ge=0)
    thumbnail_url: Optional[str] = Field(None, alias="thumbnailUrl")


class SignedURL(BaseModel):
    model_config = ConfigDict(frozen=True)

    url: str
    expires_at: datetime = Field(..., description="UTC instant after which the URL is rejected")


class Principal(BaseModel):
    """The caller, as established by upstream authentication."""

    model_config = ConfigDict(frozen=True)

    id: str
    email: Optional[str] = None
    role: str = "user"


class AccessDecision(BaseModel):
    model_config = ConfigDict(frozen=True)

    allowed: bool
    reason: Optional[str] = None


__all__ = ["RequestShape", "VideoRecord", "SignedURL", "Principal", "AccessDecision"]
