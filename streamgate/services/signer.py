from __future__ import annotations

"""
Time-limited object URLs.

`Signer` adapts `S3Client.presigned_get` to the async delivery path: the
boto3 call runs in the thread pool and every failure surfaces as
`UPSTREAM_UNAVAILABLE`. There is no unsigned fallback.
"""

import logging
import time
from datetime import datetime, timedelta, timezone
from typing import Optional

from starlette.concurrency import run_in_threadpool

from streamgate.core.config import settings
from streamgate.core.exceptions import GatewayError
from streamgate.core.metrics import inc_presign, observe_presign_seconds
from streamgate.schemas.video import SignedURL
from streamgate.utils.aws import S3StorageError

logger = logging.getLogger(__name__)


class Signer:
    """Issue `SignedURL`s for object keys.

    `store` is anything exposing `presigned_get(key, *, expires_in)`
    (normally `streamgate.utils.aws.S3Client`).
    """

    def __init__(self, store, *, default_ttl: Optional[int] = None) -> None:
        self._store = store
        self.default_ttl = int(default_ttl or settings.SIGNED_URL_TTL_SECONDS)

    async def sign(self, key: str, ttl: Optional[int] = None) -> SignedURL:
        ttl = int(ttl or self.default_ttl)
        expires_at = datetime.now(timezone.utc) + timedelta(seconds=ttl)
        started = time.perf_counter()
        try:
            url = await run_in_threadpool(self._store.presigned_get, key, expires_in=ttl)
        except S3StorageError as e:
            observe_presign_seconds("error", time.perf_counter() - started)
            inc_presign("error")
            logger.warning("presign failed key=%s: %s", key, e)
            raise GatewayError.upstream_unavailable("Could not sign object URL", details={"key": key}) from e

        observe_presign_seconds("ok", time.perf_counter() - started)
        inc_presign("ok")
        if not url:
            raise GatewayError.upstream_unavailable("Could not sign object URL", details={"key": key})
        logger.debug("presigned key=%s ttl=%s", key, ttl)
        return SignedURL(url=url, expires_at=expires_at)


__all__ = ["Signer"]
