# tests/fixtures/storage.py
"""
Fakes for the object store and the catalog.

Both are spies: they record every call so tests can assert that rejected
requests never reached I/O.
"""

from __future__ import annotations

import io
from typing import Dict, List, Optional, Tuple

from streamgate.schemas.video import VideoRecord
from streamgate.services.catalog import InMemoryCatalog
from streamgate.utils.aws import S3ObjectNotFound, S3StorageError

VIDEO_ID = "65f1c0ffee0123456789abcd"

MASTER_M3U8 = (
    "#EXTM3U\n"
    "#EXT-X-VERSION:3\n"
    "#EXT-X-STREAM-INF:BANDWIDTH=800000,RESOLUTION=640x360\n"
    "360p/playlist.m3u8\n"
    "#EXT-X-STREAM-INF:BANDWIDTH=2800000,RESOLUTION=1280x720\n"
    "720p/playlist.m3u8\n"
)

VARIANT_M3U8 = (
    "#EXTM3U\n"
    "#EXT-X-VERSION:3\n"
    "#EXT-X-TARGETDURATION:10\n"
    "#EXTINF:10.0,\n"
    "seg_001.ts\n"
    "#EXTINF:10.0,\n"
    "seg_002.ts\n"
    "#EXT-X-ENDLIST\n"
)

SEGMENT_BYTES = b"\x47" + b"\x00" * 187 + b"\x47" + b"\x11" * 187


class FakeBody:
    """Mimics botocore's StreamingBody (`read(amt=None)`, `close()`)."""

    def __init__(self, data: bytes):
        self._buf = io.BytesIO(data)
        self.closed = False
        self.reads = 0

    def read(self, amt: Optional[int] = None) -> bytes:
        self.reads += 1
        return self._buf.read() if amt is None else self._buf.read(amt)

    def close(self) -> None:
        self.closed = True


class FakeStore:
    """In-memory stand-in for `S3Client` (`presigned_get`, `get_object`)."""

    def __init__(
        self,
        objects: Optional[Dict[str, Tuple[bytes, Optional[str]]]] = None,
        *,
        presign_error: Optional[Exception] = None,
        get_error: Optional[Exception] = None,
        missing_body: Tuple[str, ...] = (),
    ):
        self.bucket = "unit-test-bucket"
        self.objects: Dict[str, Tuple[bytes, Optional[str]]] = dict(objects or {})
        self.presign_error = presign_error
        self.get_error = get_error
        self.missing_body = set(missing_body)
        self.presign_calls: List[dict] = []
        self.get_calls: List[str] = []
        self.bodies: List[FakeBody] = []

    def put(self, key: str, data, content_type: Optional[str] = None) -> None:
        if isinstance(data, str):
            data = data.encode("utf-8")
        self.objects[key] = (data, content_type)

    def presigned_get(self, key: str, *, expires_in: int) -> str:
        self.presign_calls.append({"key": key, "expires_in": expires_in})
        if self.presign_error:
            raise self.presign_error
        return f"https://store.example/{key}?X-Amz-Expires={expires_in}&X-Amz-Signature=fake"

    def get_object(self, key: str) -> dict:
        self.get_calls.append(key)
        if self.get_error:
            raise self.get_error
        if key not in self.objects:
            raise S3ObjectNotFound(f"Object not found: {key}")
        data, content_type = self.objects[key]
        resp: dict = {}
        if content_type:
            resp["ContentType"] = content_type
        if key in self.missing_body:
            return resp
        body = FakeBody(data)
        self.bodies.append(body)
        resp["Body"] = body
        resp["ContentLength"] = len(data)
        return resp

    @property
    def calls(self) -> int:
        return len(self.presign_calls) + len(self.get_calls)


class SpyCatalog(InMemoryCatalog):
    def __init__(self, videos=()):
        super().__init__(videos)
        self.calls: List[str] = []

    async def get_video(self, video_id: str):
        self.calls.append(video_id)
        return await super().get_video(video_id)


def make_video(video_id: str = VIDEO_ID, *, master: Optional[str] = None) -> VideoRecord:
    return VideoRecord(
        id=video_id,
        videoUrl=master or f"videos/{video_id}/master.m3u8",
        courseId="course-1",
        title="Intro",
        duration=120,
    )


def seeded_store(video_id: str = VIDEO_ID) -> FakeStore:
    """Master + two variants + segments (segments report no content type)."""
    store = FakeStore()
    store.put(f"videos/{video_id}/master.m3u8", MASTER_M3U8, "application/vnd.apple.mpegurl")
    for q in ("360p", "480p", "720p"):
        store.put(f"videos/{video_id}/{q}/playlist.m3u8", VARIANT_M3U8, "application/vnd.apple.mpegurl")
        store.put(f"videos/{video_id}/{q}/seg_001.ts", SEGMENT_BYTES)
        store.put(f"videos/{video_id}/{q}/seg_002.ts", SEGMENT_BYTES[::-1])
    return store


__all__ = [
    "VIDEO_ID",
    "MASTER_M3U8",
    "VARIANT_M3U8",
    "SEGMENT_BYTES",
    "FakeBody",
    "FakeStore",
    "SpyCatalog",
    "make_video",
    "seeded_store",
]
