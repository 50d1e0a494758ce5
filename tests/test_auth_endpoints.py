from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from bson import ObjectId
from httpx import ASGITransport, AsyncClient
from jose import JWTError

from mindfulness.core.config import Settings
from mindfulness.core.security import decode_access_token, hash_password, verify_password
from mindfulness.db.mongo import get_database
from mindfulness.main import create_app

from conftest import USER_ID

REGISTER = "/api/auth/register"


def _users(mock_db):
    return mock_db["users"]


async def test_register_rejects_password_without_uppercase(client, mock_db):
    _users(mock_db).insert_one = AsyncMock()
    resp = await client.post(
        REGISTER, json={"username": "alice", "email": "alice@mail.com", "password": "lowercase1"}
    )
    assert resp.status_code == 400
    error = resp.json()["error"]
    assert error["code"] == "VALIDATION_ERROR"
    assert error["message"] == "Password must contain at least one uppercase letter"
    assert "password" in error["details"]["fields"]
    _users(mock_db).insert_one.assert_not_awaited()


async def test_register_rejects_short_password(client):
    resp = await client.post(
        REGISTER, json={"username": "alice", "email": "alice@mail.com", "password": "Ab1"}
    )
    assert resp.status_code == 400
    assert resp.json()["error"]["message"] == "Password must be at least 8 characters"


async def test_register_creates_user_and_returns_token(client, mock_db):
    users = _users(mock_db)
    users.find_one = AsyncMock(return_value=None)
    users.insert_one = AsyncMock(return_value=MagicMock(inserted_id=ObjectId(USER_ID)))

    with patch("mindfulness.crud.achievements.seed_user_achievements", new=AsyncMock()) as seed:
        resp = await client.post(
            REGISTER, json={"username": "alice", "email": "Alice@Mail.com", "password": "Secret123"}
        )

    assert resp.status_code == 201
    body = resp.json()
    assert body["user"]["id"] == USER_ID
    assert body["user"]["email"] == "alice@mail.com"
    assert "passwordHash" not in body["user"]
    assert decode_access_token(body["token"])["sub"] == USER_ID
    seed.assert_awaited_once()

    stored = users.insert_one.await_args.args[0]
    assert stored["password_hash"] != "Secret123"


async def test_register_conflict_on_existing_email(client, mock_db):
    _users(mock_db).find_one = AsyncMock(return_value={"_id": ObjectId(USER_ID)})
    resp = await client.post(
        REGISTER, json={"username": "alice", "email": "alice@mail.com", "password": "Secret123"}
    )
    assert resp.status_code == 409
    assert resp.json()["error"]["message"] == "Email already registered"


async def test_login_with_wrong_password(client, mock_db):
    _users(mock_db).find_one = AsyncMock(
        return_value={
            "_id": ObjectId(USER_ID),
            "username": "alice",
            "email": "alice@mail.com",
            "password_hash": hash_password("Secret123"),
        }
    )
    resp = await client.post("/api/auth/login", json={"email": "alice@mail.com", "password": "Wrong1234"})
    assert resp.status_code == 401
    assert resp.json()["error"]["message"] == "Invalid credentials"


async def test_login_success_records_last_login(client, mock_db):
    users = _users(mock_db)
    users.find_one = AsyncMock(
        return_value={
            "_id": ObjectId(USER_ID),
            "username": "alice",
            "email": "alice@mail.com",
            "password_hash": hash_password("Secret123"),
        }
    )
    users.update_one = AsyncMock()
    resp = await client.post("/api/auth/login", json={"email": "alice@mail.com", "password": "Secret123"})
    assert resp.status_code == 200
    assert resp.json()["user"]["username"] == "alice"
    users.update_one.assert_awaited_once()


async def test_me_requires_token(client):
    resp = await client.get("/api/auth/me")
    assert resp.status_code == 401


async def test_register_keeps_password_whitespace(client, mock_db):
    users = _users(mock_db)
    users.find_one = AsyncMock(return_value=None)
    users.insert_one = AsyncMock(return_value=MagicMock(inserted_id=ObjectId(USER_ID)))

    with patch("mindfulness.crud.achievements.seed_user_achievements", new=AsyncMock()):
        resp = await client.post(
            REGISTER, json={"username": " alice ", "email": " alice@mail.com ", "password": " Secret123 "}
        )

    assert resp.status_code == 201
    stored = users.insert_one.await_args.args[0]
    assert stored["username"] == "alice"
    assert stored["email"] == "alice@mail.com"
    assert verify_password(" Secret123 ", stored["password_hash"])
    assert not verify_password("Secret123", stored["password_hash"])


async def test_login_does_not_trim_password(client, mock_db):
    _users(mock_db).find_one = AsyncMock(
        return_value={
            "_id": ObjectId(USER_ID),
            "username": "alice",
            "email": "alice@mail.com",
            "password_hash": hash_password("Secret123"),
        }
    )
    resp = await client.post("/api/auth/login", json={"email": "alice@mail.com", "password": " Secret123 "})
    assert resp.status_code == 401


async def test_register_token_uses_app_secret(mock_db):
    settings = Settings(JWT_SECRET_KEY="per-app-secret")
    application = create_app(settings)
    application.dependency_overrides[get_database] = lambda: mock_db
    users = _users(mock_db)
    users.find_one = AsyncMock(return_value=None)
    users.insert_one = AsyncMock(return_value=MagicMock(inserted_id=ObjectId(USER_ID)))

    transport = ASGITransport(app=application)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        with patch("mindfulness.crud.achievements.seed_user_achievements", new=AsyncMock()):
            resp = await c.post(
                REGISTER, json={"username": "alice", "email": "alice@mail.com", "password": "Secret123"}
            )

    token = resp.json()["token"]
    assert decode_access_token(token, settings)["sub"] == USER_ID
    with pytest.raises(JWTError):
        decode_access_token(token)
