from __future__ import annotations

"""
FastAPI dependencies for the delivery routers.

- `get_gateway`   → process-wide `HlsGateway` (built once, lazily)
- `get_principal` → caller identity established by upstream auth, if any

Tests swap the gateway with `app.dependency_overrides[get_gateway]`.
"""

import logging
from functools import lru_cache
from typing import Optional

from fastapi import Request

from streamgate.core.config import settings
from streamgate.core.exceptions import GatewayError
from streamgate.schemas.video import Principal
from streamgate.services.access import AllowAllAccessGate
from streamgate.services.catalog import InMemoryCatalog
from streamgate.services.fetcher import SegmentFetcher
from streamgate.services.gateway import HlsGateway
from streamgate.services.signer import Signer
from streamgate.utils.aws import S3Client, S3StorageError

logger = logging.getLogger(__name__)

__all__ = ["build_gateway", "get_gateway", "get_principal"]


def build_gateway(store=None, catalog=None, access_gate=None) -> HlsGateway:
    """Wire the gateway from settings, with optional collaborator overrides."""
    if store is None:
        try:
            store = S3Client()
        except S3StorageError as e:
            logger.error("object store unavailable: %s", e)
            raise GatewayError.upstream_unavailable("Object storage is not configured") from e
    if catalog is None:
        catalog = InMemoryCatalog.from_file(settings.CATALOG_FILE) if settings.CATALOG_FILE else InMemoryCatalog()
    return HlsGateway(
        catalog,
        access_gate or AllowAllAccessGate(),
        Signer(store),
        SegmentFetcher(store),
    )


@lru_cache(maxsize=1)
def get_gateway() -> HlsGateway:
    return build_gateway()


def get_principal(request: Request) -> Optional[Principal]:
    """Principal from `request.state` (set by an upstream auth layer), else None."""
    user_id = getattr(request.state, "user_id", None)
    if not user_id:
        return None
    return Principal(
        id=str(user_id),
        email=getattr(request.state, "user_email", None),
        role=getattr(request.state, "user_role", None) or "user",
    )
