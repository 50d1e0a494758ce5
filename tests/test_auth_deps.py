from datetime import datetime, timezone
from unittest.mock import AsyncMock

from fastapi import Depends, FastAPI
from httpx import ASGITransport, AsyncClient

from mindfulness.api.deps import (
    Principal,
    get_current_principal,
    principal_from_token,
    require_admin,
    require_owner_or_admin,
)
from mindfulness.core.errors import register_exception_handlers
from mindfulness.core.security import create_access_token
from mindfulness.db.mongo import get_database

from conftest import ADMIN_ID, OTHER_USER_ID, USER_ID, bearer

SESSION_ID = "64b7f0c2a1b2c3d4e5f60720"


def _owner_app(resolver) -> FastAPI:
    app = FastAPI()
    register_exception_handlers(app)
    app.dependency_overrides[get_database] = lambda: object()
    owner = require_owner_or_admin(resolver, "item_id")

    @app.get("/items/{item_id}")
    async def read_item(item_id: str, principal: Principal = Depends(owner)):
        return {"item": item_id, "by": principal.user_id}

    @app.get("/admin")
    async def admin_only(principal: Principal = Depends(require_admin)):
        return {"ok": True}

    @app.get("/me")
    async def me(principal: Principal = Depends(get_current_principal)):
        return {"user": principal.user_id, "username": principal.username}

    return app


async def _get(app: FastAPI, path: str, headers=None):
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        return await c.get(path, headers=headers or {})


async def test_missing_token_is_401():
    resp = await _get(_owner_app(AsyncMock()), "/me")
    assert resp.status_code == 401
    assert resp.json()["error"]["message"] == "No token provided"
    assert resp.json()["error"]["code"] == "AUTHENTICATION_ERROR"


async def test_malformed_header_is_401():
    resp = await _get(_owner_app(AsyncMock()), "/me", {"Authorization": "Bearer"})
    assert resp.status_code == 401
    assert resp.json()["error"]["message"] == "Invalid token format"


async def test_expired_token_is_reported_as_expired(expired_headers):
    resp = await _get(_owner_app(AsyncMock()), "/me", expired_headers)
    assert resp.status_code == 401
    assert resp.json()["error"]["message"] == "Token expired"


async def test_garbage_token_is_invalid():
    resp = await _get(_owner_app(AsyncMock()), "/me", bearer("not.a.jwt"))
    assert resp.status_code == 401
    assert resp.json()["error"]["message"] == "Invalid token"


async def test_valid_token_yields_principal(user_headers):
    resp = await _get(_owner_app(AsyncMock()), "/me", user_headers)
    assert resp.status_code == 200
    assert resp.json() == {"user": USER_ID, "username": "alice"}


async def test_admin_route_rejects_regular_user(user_headers):
    resp = await _get(_owner_app(AsyncMock()), "/admin", user_headers)
    assert resp.status_code == 403
    assert resp.json()["error"]["code"] == "FORBIDDEN"


async def test_admin_route_accepts_admin(admin_headers):
    resp = await _get(_owner_app(AsyncMock()), "/admin", admin_headers)
    assert resp.status_code == 200


async def test_owner_passes(user_headers):
    resolver = AsyncMock(return_value=USER_ID)
    resp = await _get(_owner_app(resolver), "/items/abc", user_headers)
    assert resp.status_code == 200
    assert resolver.await_args.args[1] == "abc"


async def test_non_owner_is_403(user_headers):
    resp = await _get(_owner_app(AsyncMock(return_value=OTHER_USER_ID)), "/items/abc", user_headers)
    assert resp.status_code == 403


async def test_missing_resource_is_404(user_headers):
    resp = await _get(_owner_app(AsyncMock(return_value=None)), "/items/abc", user_headers)
    assert resp.status_code == 404
    assert resp.json()["error"]["message"] == "Resource not found"


async def test_resolver_failure_is_500(user_headers):
    resp = await _get(_owner_app(AsyncMock(side_effect=RuntimeError("boom"))), "/items/abc", user_headers)
    assert resp.status_code == 500
    assert resp.json()["error"]["message"] == "Error checking resource ownership"


async def test_admin_skips_ownership_lookup(admin_headers):
    resolver = AsyncMock(return_value=OTHER_USER_ID)
    resp = await _get(_owner_app(resolver), "/items/abc", admin_headers)
    assert resp.status_code == 200
    assert resp.json()["by"] == ADMIN_ID
    resolver.assert_not_awaited()


async def test_session_route_enforces_ownership(client, mock_db, user_headers):
    mock_db["meditation_sessions"].find_one = AsyncMock(return_value={"user_id": OTHER_USER_ID})
    resp = await client.get(f"/api/meditation-sessions/{SESSION_ID}", headers=user_headers)
    assert resp.status_code == 403


async def test_session_route_returns_owned_session(client, mock_db, user_headers):
    doc = {
        "_id": SESSION_ID,
        "user_id": USER_ID,
        "type": "guided",
        "start_time": datetime(2024, 3, 1, 8, 0, tzinfo=timezone.utc),
        "status": "IN_PROGRESS",
    }
    mock_db["meditation_sessions"].find_one = AsyncMock(return_value=doc)
    resp = await client.get(f"/api/meditation-sessions/{SESSION_ID}", headers=user_headers)
    assert resp.status_code == 200
    body = resp.json()
    assert body["userId"] == USER_ID
    assert body["status"] == "IN_PROGRESS"
    assert body["interruptions"] == 0


def test_token_carries_admin_flag():
    principal = principal_from_token(create_access_token(USER_ID, "alice", is_admin=True))
    assert principal.is_admin is True
    assert principal.user_id == USER_ID
