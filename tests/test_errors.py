from unittest.mock import AsyncMock, patch

import pytest
from httpx import ASGITransport, AsyncClient
from pymongo.errors import DuplicateKeyError

from mindfulness.core.config import Settings
from mindfulness.core.security import create_access_token
from mindfulness.db.mongo import get_database
from mindfulness.main import create_app

from conftest import USER_ID, bearer


async def test_unknown_route_uses_error_envelope(client):
    resp = await client.get("/api/does-not-exist")
    assert resp.status_code == 404
    error = resp.json()["error"]
    assert error["code"] == "NOT_FOUND"
    assert "timestamp" in error


async def test_request_id_is_echoed(client):
    resp = await client.get("/api/does-not-exist", headers={"X-Request-ID": "req-123"})
    assert resp.headers["X-Request-ID"] == "req-123"
    assert resp.json()["error"]["requestId"] == "req-123"


async def test_unhandled_error_is_500_with_stack_outside_production(client, user_headers):
    with patch("mindfulness.crud.meditation_sessions.get_stats", new=AsyncMock(side_effect=RuntimeError("boom"))):
        resp = await client.get("/api/meditation-sessions/stats", headers=user_headers)

    assert resp.status_code == 500
    error = resp.json()["error"]
    assert error["code"] == "INTERNAL_ERROR"
    assert error["message"] == "Internal server error"
    assert "RuntimeError" in error["stack"]


async def test_duplicate_key_maps_to_409(client, user_headers):
    exc = DuplicateKeyError("dup", code=11000, details={"keyPattern": {"email": 1}})
    with patch("mindfulness.crud.meditation_sessions.get_stats", new=AsyncMock(side_effect=exc)):
        resp = await client.get("/api/meditation-sessions/stats", headers=user_headers)

    assert resp.status_code == 409
    assert resp.json()["error"]["message"] == "email already exists"


async def test_security_headers_present(client):
    resp = await client.get("/")
    assert resp.status_code == 200
    assert resp.headers["X-Content-Type-Options"] == "nosniff"


@pytest.fixture
def production_settings():
    return Settings(ENVIRONMENT="production", JWT_SECRET_KEY="production-only-secret")


@pytest.fixture
async def production_client(production_settings, mock_db):
    application = create_app(production_settings)
    application.dependency_overrides[get_database] = lambda: mock_db
    transport = ASGITransport(app=application, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


async def test_production_app_hides_stack(production_client, production_settings):
    headers = bearer(create_access_token(USER_ID, "alice", settings=production_settings))
    with patch("mindfulness.crud.meditation_sessions.get_stats", new=AsyncMock(side_effect=RuntimeError("boom"))):
        resp = await production_client.get("/api/meditation-sessions/stats", headers=headers)

    assert resp.status_code == 500
    error = resp.json()["error"]
    assert error["message"] == "Internal server error"
    assert "stack" not in error


async def test_production_app_rejects_tokens_signed_with_default_secret(production_client):
    headers = bearer(create_access_token(USER_ID, "alice"))
    resp = await production_client.get("/api/meditation-sessions/stats", headers=headers)
    assert resp.status_code == 401
    assert resp.json()["error"]["message"] == "Invalid token"
