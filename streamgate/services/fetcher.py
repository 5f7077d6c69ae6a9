from __future__ import annotations

"""
Segment and playlist reads from the object store.

Failure mapping
---------------
- key absent (`NoSuchKey` / 404)      → NOT_FOUND
- success without a body / empty text → UPSTREAM_INTEGRITY_ERROR
- anything else the store raises      → UPSTREAM_UNAVAILABLE

Segment bodies are never buffered whole: `FetchedObject.iter_bytes()` reads
fixed-size chunks in the thread pool and closes the upstream body when the
iteration ends, fails, or is cancelled (client disconnect).
"""

import logging
import time
from typing import Any, AsyncIterator, Optional

from botocore.exceptions import BotoCoreError
from starlette.concurrency import run_in_threadpool

from streamgate.core.config import settings
from streamgate.core.exceptions import GatewayError
from streamgate.core.metrics import inc_object_fetch, observe_object_fetch_seconds
from streamgate.utils.aws import S3ObjectNotFound, S3StorageError

logger = logging.getLogger(__name__)


class FetchedObject:
    """An open object body plus the metadata the response needs."""

    def __init__(
        self,
        key: str,
        body: Any,
        *,
        content_type: str,
        content_length: Optional[int] = None,
        chunk_size: int = 64 * 1024,
    ) -> None:
        self.key = key
        self.content_type = content_type
        self.content_length = content_length
        self._body = body
        self._chunk_size = chunk_size
        self._closed = False

    async def iter_bytes(self) -> AsyncIterator[bytes]:
        try:
            while True:
                chunk = await run_in_threadpool(self._body.read, self._chunk_size)
                if not chunk:
                    break
                yield chunk
        except (BotoCoreError, OSError) as e:
            logger.warning("segment stream aborted key=%s: %s", self.key, e)
            raise
        finally:
            self.close()

    async def read_all(self) -> bytes:
        try:
            return await run_in_threadpool(self._body.read)
        finally:
            self.close()

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        close = getattr(self._body, "close", None)
        if close is not None:
            close()


class SegmentFetcher:
    """Open object bodies by key.

    `store` is anything exposing `get_object(key) -> dict` that raises
    `S3ObjectNotFound` / `S3StorageError` (normally `S3Client`).
    """

    def __init__(self, store, *, chunk_size: Optional[int] = None, fallback_content_type: Optional[str] = None) -> None:
        self._store = store
        self.chunk_size = int(chunk_size or settings.STREAM_CHUNK_SIZE)
        self.fallback_content_type = fallback_content_type or settings.SEGMENT_FALLBACK_CONTENT_TYPE

    async def fetch(self, key: str) -> FetchedObject:
        started = time.perf_counter()
        try:
            resp = await run_in_threadpool(self._store.get_object, key)
        except S3ObjectNotFound as e:
            self._record("not_found", started)
            raise GatewayError.not_found("Object not found", details={"key": key}) from e
        except S3StorageError as e:
            self._record("error", started)
            logger.warning("get_object failed key=%s: %s", key, e)
            raise GatewayError.upstream_unavailable(details={"key": key}) from e

        body = (resp or {}).get("Body")
        if body is None:
            self._record("empty", started)
            raise GatewayError.upstream_integrity(details={"key": key})

        self._record("ok", started)
        length = resp.get("ContentLength")
        return FetchedObject(
            key,
            body,
            content_type=resp.get("ContentType") or self.fallback_content_type,
            content_length=int(length) if length is not None else None,
            chunk_size=self.chunk_size,
        )

    async def read_text(self, key: str) -> str:
        """Whole-object UTF-8 read, for playlists. A leading BOM is dropped."""
        obj = await self.fetch(key)
        try:
            raw = await obj.read_all()
        except (BotoCoreError, OSError) as e:
            raise GatewayError.upstream_unavailable(details={"key": key}) from e
        if not raw:
            raise GatewayError.upstream_integrity("Object store returned an empty playlist", details={"key": key})
        try:
            return raw.decode("utf-8-sig")
        except UnicodeDecodeError as e:
            raise GatewayError.upstream_integrity("Playlist is not valid UTF-8", details={"key": key}) from e

    @staticmethod
    def _record(result: str, started: float) -> None:
        inc_object_fetch(result)
        observe_object_fetch_seconds(result, time.perf_counter() - started)


__all__ = ["FetchedObject", "SegmentFetcher"]
