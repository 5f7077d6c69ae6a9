# tests/test_api/test_app.py

import uuid

import pytest
from starlette.requests import Request

from streamgate.api.dependencies import build_gateway, get_principal
from streamgate.core.config import settings
from streamgate.core.exceptions import GatewayError
from streamgate.core.limiter import get_rate_limit_key
from tests.fixtures.storage import VIDEO_ID


def _request(headers=None, client=("10.0.0.9", 1234)) -> Request:
    scope = {
        "type": "http",
        "method": "GET",
        "path": "/",
        "headers": [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()],
        "client": client,
        "state": {},
    }
    return Request(scope)


def test_healthz(client):
    r = client.get("/healthz")
    assert r.status_code == 200
    assert r.json() == {"ok": True}


def test_root(client):
    body = client.get("/").json()
    assert body["name"] == settings.PROJECT_NAME


def test_metrics_exposes_gateway_counters(client):
    client.get(f"/api/videos/{VIDEO_ID}/stream")
    r = client.get("/metrics")
    assert r.status_code == 200
    assert "gateway_presigns_total" in r.text
    assert "gateway_playlist_rewrites_total" in r.text


def test_readyz_without_bucket(client, monkeypatch):
    monkeypatch.setattr(settings, "S3_BUCKET_NAME", None)
    r = client.get("/readyz")
    assert r.status_code == 503
    assert r.json()["checks"]["object_store"] is False


def test_request_id_generated_and_echoed(client):
    r = client.get("/healthz")
    generated = r.headers["X-Request-ID"]
    assert uuid.UUID(generated).version == 4

    mine = str(uuid.uuid4())
    assert client.get("/healthz", headers={"X-Request-ID": mine}).headers["X-Request-ID"] == mine


def test_untrusted_request_id_replaced(client):
    r = client.get("/healthz", headers={"X-Request-ID": "not-a-uuid"})
    assert r.headers["X-Request-ID"] != "not-a-uuid"


def test_unhandled_error_is_generic_500(make_client, gateway, monkeypatch):
    async def boom(*_, **__):
        raise RuntimeError("secret internals")

    monkeypatch.setattr(gateway, "master_signed", boom)
    r = make_client(gateway).get(f"/api/videos/{VIDEO_ID}/stream")
    assert r.status_code == 500
    assert r.json()["code"] == "INTERNAL_ERROR"
    assert "secret internals" not in r.text


def test_unknown_route_is_problem_json(client):
    r = client.get("/api/nope")
    assert r.status_code == 404
    assert r.headers["content-type"].startswith("application/problem+json")


def test_build_gateway_without_bucket_is_upstream_unavailable(monkeypatch):
    monkeypatch.setattr(settings, "S3_BUCKET_NAME", None)
    with pytest.raises(GatewayError) as ei:
        build_gateway()
    assert ei.value.status_code == 502


def test_get_principal_from_state():
    req = _request()
    assert get_principal(req) is None
    req.state.user_id = "u-1"
    req.state.user_role = "admin"
    principal = get_principal(req)
    assert principal.id == "u-1"
    assert principal.role == "admin"


def test_rate_limit_key_prefers_user_then_forwarded_ip():
    req = _request({"X-Forwarded-For": "203.0.113.7, 10.0.0.1"})
    assert get_rate_limit_key(req).endswith("ip:203.0.113.7")
    req.state.user_id = "u-1"
    assert get_rate_limit_key(req).endswith("user:u-1")
    assert get_rate_limit_key(_request()).endswith("ip:10.0.0.9")
