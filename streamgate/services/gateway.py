from __future__ import annotations

"""
HLS delivery orchestration.

Every route family follows the same pipeline, and any stage failing ends the
request with its `GatewayError`:

    identifier check → quality/segment guards      (no I/O yet)
    → catalog lookup → access gate                 (skipped for processed videos)
    → key resolution
    → {fetch playlist → rewrite}  or  {fetch segment | sign segment}

The rewrite strategy is chosen per route by picking a transformer from
`streamgate.services.playlist`; the pipeline itself never branches on it.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Union

from streamgate.core.config import settings
from streamgate.core.exceptions import GatewayError
from streamgate.core.metrics import inc_playlist_rewrite
from streamgate.schemas.video import Principal, RequestShape, SignedURL, VideoRecord
from streamgate.services import keys
from streamgate.services.access import AccessGate
from streamgate.services.catalog import Catalog
from streamgate.services.fetcher import FetchedObject, SegmentFetcher
from streamgate.services.playlist import (
    LineTransformer,
    ProxyTransformer,
    SignedUrlTransformer,
    path_url_builder,
    query_url_builder,
    rewrite_playlist,
)
from streamgate.services.signer import Signer

logger = logging.getLogger(__name__)


def classify(quality: Optional[str], segment: Optional[str]) -> RequestShape:
    """Request shape from which parameters are present (empty counts as absent)."""
    if not quality:
        if segment:
            raise GatewayError.invalid_segment_path("Segment requests require a resolution")
        return RequestShape.MASTER
    return RequestShape.SEGMENT if segment else RequestShape.VARIANT


@dataclass(frozen=True)
class PlaylistResult:
    text: str


@dataclass(frozen=True)
class SegmentResult:
    obj: FetchedObject


@dataclass(frozen=True)
class RedirectResult:
    signed: SignedURL


GatewayResult = Union[PlaylistResult, SegmentResult, RedirectResult]


class HlsGateway:
    """One coroutine per route family.

    Parameters
    ----------
    catalog, access_gate, signer, fetcher
        Collaborators; see their modules.
    id_pattern : str | None
        Catalog identifier regex. Defaults to `settings.CATALOG_ID_PATTERN`.
    segment_delivery : "proxy" | "redirect" | None
        How the unified route serves segments. Defaults to
        `settings.UNIFIED_SEGMENT_DELIVERY`.
    """

    def __init__(
        self,
        catalog: Catalog,
        access_gate: AccessGate,
        signer: Signer,
        fetcher: SegmentFetcher,
        *,
        id_pattern: Optional[str] = None,
        ttl: Optional[int] = None,
        segment_delivery: Optional[str] = None,
        api_prefix: Optional[str] = None,
        base_url: Optional[str] = None,
    ) -> None:
        self.catalog = catalog
        self.access_gate = access_gate
        self.signer = signer
        self.fetcher = fetcher
        self.id_pattern = id_pattern or settings.CATALOG_ID_PATTERN
        self.ttl = int(ttl or settings.SIGNED_URL_TTL_SECONDS)
        self.segment_delivery = segment_delivery or settings.UNIFIED_SEGMENT_DELIVERY
        self.base_url = settings.PROXY_BASE_URL if base_url is None else base_url

        prefix = (settings.API_PREFIX if api_prefix is None else api_prefix).rstrip("/")
        self.v1_prefix = f"{prefix}/videos/v1"
        self.processed_prefix = f"{prefix}/videos/processed"
        self.hls_endpoint = f"{prefix}/hls"
        self.hls_stream_prefix = f"{prefix}/hls/stream/playlist"

    # ── Shared stages ─────────────────────────────────────────
    def _validate_id(self, video_id: str) -> str:
        return keys.validate_video_id(video_id, pattern=self.id_pattern)

    async def _load_video(self, video_id: str, principal: Optional[Principal]) -> VideoRecord:
        video = await self.catalog.get_video(video_id)
        if video is None:
            raise GatewayError.not_found()
        decision = await self.access_gate.check(principal, video)
        if not decision.allowed:
            logger.info("access denied video=%s principal=%s reason=%s", video_id, getattr(principal, "id", None), decision.reason)
            raise GatewayError.forbidden(decision.reason or "You do not have access to this video")
        return video

    async def _rewrite(self, key: str, transformer: LineTransformer, *, shape: RequestShape, mode: str) -> str:
        text = await self.fetcher.read_text(key)
        out = await rewrite_playlist(text, transformer)
        inc_playlist_rewrite(shape.value, mode)
        logger.debug("playlist rewritten key=%s shape=%s mode=%s", key, shape.value, mode)
        return out

    def _signed(self, key: str) -> SignedUrlTransformer:
        return SignedUrlTransformer(self.signer, keys.base_prefix(key), self.ttl)

    def _v1_urls(self, video_id: str):
        return path_url_builder(self.v1_prefix, video_id, base_url=self.base_url)

    # ── Master stream (signed) ────────────────────────────────
    async def master_signed(self, video_id: str, principal: Optional[Principal] = None) -> str:
        self._validate_id(video_id)
        video = await self._load_video(video_id, principal)
        key = keys.resolve(video)
        return await self._rewrite(key, self._signed(key), shape=RequestShape.MASTER, mode="signed")

    # ── HLS stream family (proxy master, signed variants) ─────
    async def stream_master(self, video_id: str, principal: Optional[Principal] = None) -> str:
        self._validate_id(video_id)
        video = await self._load_video(video_id, principal)
        key = keys.resolve(video)
        urls = path_url_builder(self.hls_stream_prefix, video_id, base_url=self.base_url, allow_bare=False)
        return await self._rewrite(key, ProxyTransformer(urls), shape=RequestShape.MASTER, mode="proxy")

    async def signed_variant(self, video_id: str, quality: str, principal: Optional[Principal] = None) -> str:
        self._validate_id(video_id)
        keys.validate_quality(quality)
        video = await self._load_video(video_id, principal)
        key = keys.resolve(video, quality)
        return await self._rewrite(key, self._signed(key), shape=RequestShape.VARIANT, mode="signed")

    # ── Direct family (signed all the way down) ───────────────
    async def direct_variant(self, video_id: str, variant_path: str, principal: Optional[Principal] = None) -> str:
        """Variant addressed by its path under the master's directory."""
        self._validate_id(video_id)
        keys.validate_variant_path(variant_path)
        video = await self._load_video(video_id, principal)
        key = keys.resolve_variant_path(video, variant_path)
        return await self._rewrite(key, self._signed(key), shape=RequestShape.VARIANT, mode="signed")

    # ── v1 family (proxy) ─────────────────────────────────────
    async def master_proxy(self, video_id: str, principal: Optional[Principal] = None) -> str:
        self._validate_id(video_id)
        video = await self._load_video(video_id, principal)
        key = keys.resolve(video)
        return await self._rewrite(key, ProxyTransformer(self._v1_urls(video_id)), shape=RequestShape.MASTER, mode="proxy")

    async def variant(self, video_id: str, quality: str, principal: Optional[Principal] = None) -> str:
        self._validate_id(video_id)
        keys.validate_quality(quality)
        video = await self._load_video(video_id, principal)
        key = keys.resolve(video, quality)
        transformer = ProxyTransformer(self._v1_urls(video_id), quality=quality)
        return await self._rewrite(key, transformer, shape=RequestShape.VARIANT, mode="proxy")

    async def segment(
        self, video_id: str, quality: str, segment: str, principal: Optional[Principal] = None
    ) -> FetchedObject:
        self._validate_id(video_id)
        keys.validate_quality(quality)
        keys.validate_segment_name(segment)
        video = await self._load_video(video_id, principal)
        return await self.fetcher.fetch(keys.resolve(video, quality, segment))

    async def proxy_segment(
        self, video_id: str, segment_path: str, principal: Optional[Principal] = None
    ) -> FetchedObject:
        self._validate_id(video_id)
        keys.validate_segment_name(segment_path)
        video = await self._load_video(video_id, principal)
        return await self.fetcher.fetch(keys.resolve_segment_path(video, segment_path))

    # ── Processed family (no identifier check, no catalog) ────
    async def processed_variant(self, video_id: str, quality: str) -> str:
        keys.validate_quality(quality)
        key = keys.resolve_processed(video_id, quality)
        urls = path_url_builder(self.processed_prefix, video_id, base_url=self.base_url)
        return await self._rewrite(key, ProxyTransformer(urls, quality=quality), shape=RequestShape.VARIANT, mode="proxy")

    async def processed_segment(self, video_id: str, quality: str, segment: str) -> FetchedObject:
        keys.validate_quality(quality)
        keys.validate_segment_name(segment)
        return await self.fetcher.fetch(keys.resolve_processed(video_id, quality, segment))

    # ── Unified query route ───────────────────────────────────
    async def handle(
        self,
        video_id: str,
        resolution: Optional[str] = None,
        segment: Optional[str] = None,
        principal: Optional[Principal] = None,
    ) -> GatewayResult:
        self._validate_id(video_id)
        shape = classify(resolution, segment)
        if shape is not RequestShape.MASTER:
            keys.validate_quality(resolution)  # type: ignore[arg-type]
        if shape is RequestShape.SEGMENT:
            keys.validate_segment_name(segment)  # type: ignore[arg-type]

        video = await self._load_video(video_id, principal)

        if shape is RequestShape.MASTER:
            key = keys.resolve(video)
            urls = query_url_builder(self.hls_endpoint, video_id, base_url=self.base_url)
            return PlaylistResult(await self._rewrite(key, ProxyTransformer(urls), shape=shape, mode="proxy"))

        if shape is RequestShape.VARIANT:
            key = keys.resolve(video, resolution)
            return PlaylistResult(await self._rewrite(key, self._signed(key), shape=shape, mode="signed"))

        key = keys.resolve(video, resolution, segment)
        if self.segment_delivery == "redirect":
            return RedirectResult(await self.signer.sign(key, self.ttl))
        return SegmentResult(await self.fetcher.fetch(key))


__all__ = [
    "classify",
    "HlsGateway",
    "GatewayResult",
    "PlaylistResult",
    "SegmentResult",
    "RedirectResult",
]
