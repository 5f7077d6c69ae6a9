# streamgate/utils/aws.py
from __future__ import annotations

"""
🧊 StreamGate • Object Store Utilities
======================================

Thin boto3 wrapper over any S3-compatible store (Cloudflare R2, AWS S3,
MinIO, LocalStack) used by the delivery services:

- Signer   → `S3Client.presigned_get(...)`
- Fetcher  → `S3Client.get_object(...)`
- Probes   → `S3Client.ping()` (used by `/readyz`)

🎯 Goals
--------
- Short-lived SigV4 GET URLs only; the gateway never writes to the store
- Explicit timeouts + bounded retries (from settings)
- Defensive key normalization (no leading slash, no `..`)
- Not-found distinguished from every other storage failure
- Zero secret leakage in logs

Implementation notes
--------------------
All methods are **blocking**. Async callers run them in the thread pool
(`starlette.concurrency.run_in_threadpool`).
"""

import logging
import re
from typing import Any, Dict, Optional

import boto3
import botocore
from botocore.config import Config as BotoConfig
from pydantic import SecretStr

from streamgate.core.config import settings

logger = logging.getLogger(__name__)

# ─────────────────────────────────────────────────────────────────────────────
# 🧱 Exceptions
# ─────────────────────────────────────────────────────────────────────────────

class S3StorageError(RuntimeError):
    """Raised when a storage operation fails (network, auth, policy, etc.)."""


class S3ObjectNotFound(S3StorageError):
    """Raised when the store reports the key absent (`NoSuchKey` / 404)."""


_NOT_FOUND_CODES = {"404", "NoSuchKey", "NotFound"}


# ─────────────────────────────────────────────────────────────────────────────
# 🧰 Key validation
# ─────────────────────────────────────────────────────────────────────────────

def _normalize_key(key: str) -> str:
    """
    Normalize and validate object keys.

    Steps
    -----
    1) Coerce to str, strip whitespace
    2) Remove leading '/'
    3) Collapse '//' runs
    4) Reject path traversal ('..')

    Any other UTF-8 is a legal S3 key; boto3 percent-encodes it.

    Raises
    ------
    S3StorageError
        If key is empty or contains a traversal segment.
    """
    k = str(key or "").strip().lstrip("/")
    k = re.sub(r"/{2,}", "/", k)
    if not k:
        raise S3StorageError("Invalid storage key: empty")
    if ".." in k:
        raise S3StorageError("Invalid storage key: path traversal detected")
    return k


def _secret_value(v: Optional[SecretStr | str]) -> Optional[str]:
    if v is None:
        return None
    return v.get_secret_value() if isinstance(v, SecretStr) else str(v)


def _is_not_found(exc: Exception) -> bool:
    if isinstance(exc, botocore.exceptions.ClientError):
        err = exc.response.get("Error", {}) or {}
        status = (exc.response.get("ResponseMetadata", {}) or {}).get("HTTPStatusCode")
        return str(err.get("Code")) in _NOT_FOUND_CODES or status == 404
    return False


# ─────────────────────────────────────────────────────────────────────────────
# 📦 S3 Client
# ─────────────────────────────────────────────────────────────────────────────

class S3Client:
    """
    Read-only S3 wrapper with safe defaults.

    Parameters
    ----------
    bucket : str | None
        Source bucket. Defaults to `settings.S3_BUCKET_NAME`.
    region_name : str | None
        Defaults to `settings.S3_REGION` (`auto` for R2).
    endpoint_url : str | None
        Custom S3-compatible endpoint. Defaults to `settings.s3_endpoint`,
        which derives the R2 endpoint from `CLOUDFLARE_ACCOUNT_ID`.

    Notes
    -----
    * Credentials:
        - If `S3_ACCESS_KEY_ID` + `S3_SECRET_ACCESS_KEY` are set they are used
          explicitly; otherwise the standard AWS credential chain applies.
    * Retries/Timeouts:
        - `S3_MAX_ATTEMPTS`, `S3_CONNECT_TIMEOUT`, `S3_READ_TIMEOUT`.
    """

    def __init__(
        self,
        bucket: Optional[str] = None,
        *,
        region_name: Optional[str] = None,
        endpoint_url: Optional[str] = None,
    ) -> None:
        self.bucket = bucket or settings.S3_BUCKET_NAME
        if not self.bucket:
            raise S3StorageError("S3_BUCKET_NAME not configured")

        region_cfg = region_name or settings.S3_REGION
        endpoint_cfg = endpoint_url or settings.s3_endpoint

        cfg = BotoConfig(
            signature_version="s3v4",
            retries={"max_attempts": settings.S3_MAX_ATTEMPTS, "mode": "standard"},
            connect_timeout=settings.S3_CONNECT_TIMEOUT,
            read_timeout=settings.S3_READ_TIMEOUT,
            # Custom endpoints (R2/MinIO) are addressed by path.
            s3={"addressing_style": "path" if endpoint_cfg else "virtual"},
        )

        ak = settings.S3_ACCESS_KEY_ID
        sk = _secret_value(settings.S3_SECRET_ACCESS_KEY)

        client_kwargs: Dict[str, Any] = {"config": cfg}
        if region_cfg:
            client_kwargs["region_name"] = region_cfg
        if endpoint_cfg:
            client_kwargs["endpoint_url"] = endpoint_cfg
        if ak and sk:
            client_kwargs["aws_access_key_id"] = ak
            client_kwargs["aws_secret_access_key"] = sk

        try:
            self.client = boto3.client("s3", **client_kwargs)
        except Exception as e:  # pragma: no cover
            raise S3StorageError(f"Failed to create S3 client: {e}") from e

        self._repr = f"S3Client(bucket={self.bucket}, region={region_cfg}, endpoint={'yes' if endpoint_cfg else 'no'})"

    # ────────────────────────────────────────────────────────────────────────
    # 🔐 Signed URL helpers
    # ────────────────────────────────────────────────────────────────────────

    def presigned_get(
        self,
        key: str,
        *,
        expires_in: int = 3600,
    ) -> str:
        """
        Generate a short-lived **presigned GET** URL.

        Parameters
        ----------
        key : str
            Object key (normalized).
        expires_in : int
            TTL seconds (default 3600s = 1h).

        Raises
        ------
        S3StorageError
            On signing failure or invalid key.
        """
        k = _normalize_key(key)
        try:
            return self.client.generate_presigned_url(
                ClientMethod="get_object",
                Params={"Bucket": self.bucket, "Key": k},
                ExpiresIn=int(expires_in),
            )
        except Exception as e:
            raise S3StorageError(f"Failed to create presigned GET: {e}") from e

    # ────────────────────────────────────────────────────────────────────────
    # 📥 Reads
    # ────────────────────────────────────────────────────────────────────────

    def get_object(self, key: str) -> Dict[str, Any]:
        """
        GET the object and return the raw boto3 response.

        The caller owns `resp["Body"]` (a botocore `StreamingBody`) and must
        close it.

        Raises
        ------
        S3ObjectNotFound
            When the key is absent.
        S3StorageError
            On any other failure (network, timeout, auth, invalid key).
        """
        k = _normalize_key(key)
        try:
            return self.client.get_object(Bucket=self.bucket, Key=k)
        except getattr(self.client, "exceptions", object()).NoSuchKey as e:  # type: ignore[attr-defined]
            raise S3ObjectNotFound(f"Object not found: {k}") from e
        except botocore.exceptions.ClientError as e:
            if _is_not_found(e):
                raise S3ObjectNotFound(f"Object not found: {k}") from e
            raise S3StorageError(f"Failed to get object: {e}") from e
        except botocore.exceptions.BotoCoreError as e:
            raise S3StorageError(f"Failed to get object: {e}") from e

    def ping(self) -> bool:
        """Best-effort bucket reachability check (HEAD bucket)."""
        try:
            self.client.head_bucket(Bucket=self.bucket)
            return True
        except (botocore.exceptions.ClientError, botocore.exceptions.BotoCoreError) as e:
            logger.warning("head_bucket failed: %s", e)
            return False

    def __repr__(self) -> str:  # pragma: no cover
        return self._repr


__all__ = ["S3Client", "S3StorageError", "S3ObjectNotFound"]
