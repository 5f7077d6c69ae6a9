# tests/conftest.py
"""
Global test bootstrap
- Makes SlowAPI rate limiting test-friendly (bypassed by default)
- Keeps logging on the console only
- Exposes fake object store / catalog / gateway fixtures and a TestClient
  whose gateway dependency is overridden
"""

from __future__ import annotations

import os

# ──────────────────────────────────────────────────────────────────────────────
# 🌱 Test env (set BEFORE importing the app so import-time config sees it)
# ──────────────────────────────────────────────────────────────────────────────
os.environ.setdefault("RATELIMIT_STORAGE_URI", "memory://")
os.environ.setdefault("RATE_LIMIT_TEST_BYPASS", "1")
os.environ.setdefault("LOG_TO_FILE", "0")
os.environ.setdefault("ENV", "development")

import pytest
from fastapi.testclient import TestClient

from streamgate.api.dependencies import get_gateway
from streamgate.services.gateway import HlsGateway
from tests.fixtures.gateway import build_test_gateway
from tests.fixtures.storage import VIDEO_ID, SpyCatalog, make_video, seeded_store


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def store():
    return seeded_store()


@pytest.fixture
def catalog():
    return SpyCatalog([make_video(VIDEO_ID)])


@pytest.fixture
def gateway(store, catalog):
    return build_test_gateway(store, catalog, segment_delivery="proxy")


@pytest.fixture
def make_client():
    """Factory: `make_client(gateway)` → TestClient with the gateway injected."""
    from streamgate.main import create_app

    clients = []

    def _make(gw: HlsGateway) -> TestClient:
        app = create_app()
        app.dependency_overrides[get_gateway] = lambda: gw
        client = TestClient(app, raise_server_exceptions=False)
        clients.append(client)
        return client

    yield _make
    for c in clients:
        c.close()


@pytest.fixture
def client(make_client, gateway):
    return make_client(gateway)
