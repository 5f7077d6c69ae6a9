# tests/test_services/test_catalog_access.py

import json

import pytest

from streamgate.core.exceptions import ErrorKind, GatewayError
from streamgate.schemas.video import Principal
from streamgate.services.access import AllowAllAccessGate, DenyAllAccessGate
from streamgate.services.catalog import InMemoryCatalog
from tests.fixtures.storage import VIDEO_ID, make_video

pytestmark = pytest.mark.anyio


async def test_catalog_lookup_hit_and_miss():
    catalog = InMemoryCatalog([make_video()])
    video = await catalog.get_video(VIDEO_ID)
    assert video.video_url == f"videos/{VIDEO_ID}/master.m3u8"
    assert await catalog.get_video("0" * 24) is None


async def test_catalog_from_file_list(tmp_path):
    path = tmp_path / "catalog.json"
    path.write_text(json.dumps([{"id": VIDEO_ID, "videoUrl": "videos/x/master.m3u8", "courseId": "c1"}]))
    catalog = InMemoryCatalog.from_file(path)
    assert len(catalog) == 1
    assert (await catalog.get_video(VIDEO_ID)).course_id == "c1"


async def test_catalog_from_file_mapping(tmp_path):
    path = tmp_path / "catalog.json"
    path.write_text(json.dumps({VIDEO_ID: {"videoUrl": "videos/x/master.m3u8", "courseId": "c1", "title": "T"}}))
    video = await InMemoryCatalog.from_file(path).get_video(VIDEO_ID)
    assert video.title == "T"


def test_catalog_from_file_rejects_scalar(tmp_path):
    path = tmp_path / "catalog.json"
    path.write_text("42")
    with pytest.raises(ValueError):
        InMemoryCatalog.from_file(path)


def test_video_record_is_frozen():
    video = make_video()
    with pytest.raises(Exception):
        video.video_url = "elsewhere"


async def test_access_gates():
    video = make_video()
    assert (await AllowAllAccessGate().check(None, video)).allowed
    decision = await DenyAllAccessGate("Not enrolled").check(Principal(id="u1"), video)
    assert not decision.allowed
    assert decision.reason == "Not enrolled"


@pytest.mark.parametrize(
    "factory,kind,status,code",
    [
        (GatewayError.invalid_identifier, ErrorKind.INVALID_IDENTIFIER, 400, "INVALID_IDENTIFIER"),
        (GatewayError.invalid_segment_path, ErrorKind.INVALID_SEGMENT_PATH, 400, "INVALID_SEGMENT_PATH"),
        (GatewayError.forbidden, ErrorKind.FORBIDDEN, 403, "FORBIDDEN"),
        (GatewayError.not_found, ErrorKind.NOT_FOUND, 404, "NOT_FOUND"),
        (GatewayError.upstream_integrity, ErrorKind.UPSTREAM_INTEGRITY, 500, "UPSTREAM_INTEGRITY_ERROR"),
        (GatewayError.upstream_unavailable, ErrorKind.UPSTREAM_UNAVAILABLE, 502, "UPSTREAM_UNAVAILABLE"),
        (GatewayError.internal, ErrorKind.INTERNAL, 500, "INTERNAL_ERROR"),
    ],
)
def test_error_taxonomy(factory, kind, status, code):
    err = factory()
    assert (err.kind, err.status_code, err.code) == (kind, status, code)
    assert err.message
