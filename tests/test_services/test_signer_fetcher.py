# tests/test_services/test_signer_fetcher.py

from datetime import datetime, timezone

import pytest

from streamgate.core.exceptions import ErrorKind, GatewayError
from streamgate.services.fetcher import SegmentFetcher
from streamgate.services.signer import Signer
from streamgate.utils.aws import S3StorageError
from tests.fixtures.storage import SEGMENT_BYTES, FakeStore

pytestmark = pytest.mark.anyio


async def _drain(obj) -> bytes:
    return b"".join([chunk async for chunk in obj.iter_bytes()])


# ─────────────────────────────────────────────────────────────
# Signer
# ─────────────────────────────────────────────────────────────

async def test_sign_returns_url_with_future_expiry():
    store = FakeStore()
    before = datetime.now(timezone.utc)
    signed = await Signer(store).sign("videos/V1/720p/playlist.m3u8", 600)
    assert signed.url.startswith("https://store.example/videos/V1/720p/playlist.m3u8?")
    assert signed.expires_at > before
    assert (signed.expires_at - before).total_seconds() == pytest.approx(600, abs=5)
    assert store.presign_calls == [{"key": "videos/V1/720p/playlist.m3u8", "expires_in": 600}]


async def test_sign_uses_default_ttl():
    store = FakeStore()
    await Signer(store, default_ttl=900).sign("k.ts")
    assert store.presign_calls[0]["expires_in"] == 900


async def test_sign_failure_is_upstream_unavailable():
    store = FakeStore(presign_error=S3StorageError("boom"))
    with pytest.raises(GatewayError) as ei:
        await Signer(store).sign("videos/V1/720p/playlist.m3u8")
    assert ei.value.kind is ErrorKind.UPSTREAM_UNAVAILABLE
    assert ei.value.status_code == 502
    assert "store.example" not in ei.value.message


# ─────────────────────────────────────────────────────────────
# Fetcher
# ─────────────────────────────────────────────────────────────

async def test_fetch_streams_bytes_and_falls_back_content_type():
    store = FakeStore()
    store.put("videos/V1/480p/seg_001.ts", SEGMENT_BYTES)
    obj = await SegmentFetcher(store, chunk_size=50, fallback_content_type="video/MP2T").fetch("videos/V1/480p/seg_001.ts")
    assert obj.content_type == "video/MP2T"
    assert obj.content_length == len(SEGMENT_BYTES)
    assert await _drain(obj) == SEGMENT_BYTES
    assert store.bodies[0].closed
    assert store.bodies[0].reads > 1


async def test_fetch_keeps_store_content_type():
    store = FakeStore()
    store.put("a/seg.ts", b"abc", "video/mp2t")
    obj = await SegmentFetcher(store).fetch("a/seg.ts")
    assert obj.content_type == "video/mp2t"


async def test_fetch_is_idempotent():
    store = FakeStore()
    store.put("a/seg.ts", SEGMENT_BYTES)
    fetcher = SegmentFetcher(store, chunk_size=64)
    first, second = await fetcher.fetch("a/seg.ts"), await fetcher.fetch("a/seg.ts")
    assert await _drain(first) == await _drain(second)
    assert first.content_type == second.content_type
    assert store.get_calls == ["a/seg.ts", "a/seg.ts"]


async def test_body_closed_when_consumer_stops_early():
    store = FakeStore()
    store.put("a/seg.ts", SEGMENT_BYTES)
    obj = await SegmentFetcher(store, chunk_size=16).fetch("a/seg.ts")
    stream = obj.iter_bytes()
    assert len(await stream.__anext__()) == 16
    await stream.aclose()
    assert store.bodies[0].closed


async def test_missing_key_is_not_found():
    with pytest.raises(GatewayError) as ei:
        await SegmentFetcher(FakeStore()).fetch("nope.ts")
    assert ei.value.kind is ErrorKind.NOT_FOUND
    assert ei.value.status_code == 404


async def test_missing_body_is_integrity_error():
    store = FakeStore(missing_body=("a/seg.ts",))
    store.put("a/seg.ts", b"abc")
    with pytest.raises(GatewayError) as ei:
        await SegmentFetcher(store).fetch("a/seg.ts")
    assert ei.value.kind is ErrorKind.UPSTREAM_INTEGRITY
    assert ei.value.status_code == 500


async def test_store_error_is_upstream_unavailable():
    store = FakeStore(get_error=S3StorageError("timeout"))
    with pytest.raises(GatewayError) as ei:
        await SegmentFetcher(store).fetch("a/seg.ts")
    assert ei.value.kind is ErrorKind.UPSTREAM_UNAVAILABLE


async def test_read_text_decodes_and_closes():
    store = FakeStore()
    store.put("a/playlist.m3u8", "#EXTM3U\nseg.ts\n")
    text = await SegmentFetcher(store).read_text("a/playlist.m3u8")
    assert text == "#EXTM3U\nseg.ts\n"
    assert store.bodies[0].closed


@pytest.mark.parametrize("payload", [b"", b"\xff\xfe\x00bad"])
async def test_read_text_rejects_empty_or_undecodable(payload):
    store = FakeStore()
    store.put("a/playlist.m3u8", payload)
    with pytest.raises(GatewayError) as ei:
        await SegmentFetcher(store).read_text("a/playlist.m3u8")
    assert ei.value.kind is ErrorKind.UPSTREAM_INTEGRITY


async def test_read_text_drops_leading_bom():
    store = FakeStore()
    store.put("a/playlist.m3u8", "\ufeff#EXTM3U\nseg.ts\n".encode("utf-8"))
    assert await SegmentFetcher(store).read_text("a/playlist.m3u8") == "#EXTM3U\nseg.ts\n"
