from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
from bson import ObjectId

from mindfulness.core.errors import ConflictError, UnauthorizedError
from mindfulness.core.security import hash_password, verify_password
from mindfulness.crud import users as user_crud
from mindfulness.schemas.user import PasswordChange, UserRegister

from conftest import OTHER_USER_ID, USER_ID, cursor_of

PASSWORD = "Secret123"


def _user(user_id=USER_ID, **overrides):
    doc = {
        "_id": ObjectId(user_id),
        "username": "alice",
        "email": "alice@mail.com",
        "password_hash": hash_password(PASSWORD),
        "created_at": datetime(2024, 1, 1, tzinfo=timezone.utc),
    }
    doc.update(overrides)
    return doc


# ---------- crud ----------
async def test_get_user_by_malformed_id_skips_query(mock_db):
    mock_db["users"].find_one = AsyncMock()
    assert await user_crud.get_user_by_id(mock_db, "nope") is None
    mock_db["users"].find_one.assert_not_awaited()


async def test_create_user_rejects_taken_email(mock_db):
    mock_db["users"].find_one = AsyncMock(return_value=_user())
    with pytest.raises(ConflictError, match="Email already registered"):
        await user_crud.create_user(
            mock_db, UserRegister(username="alice2", email="alice@mail.com", password=PASSWORD)
        )


async def test_change_password_with_wrong_current(mock_db):
    mock_db["users"].find_one = AsyncMock(return_value=_user())
    mock_db["users"].update_one = AsyncMock()

    with pytest.raises(UnauthorizedError, match="Current password is incorrect"):
        await user_crud.change_password(
            mock_db, USER_ID, PasswordChange(current_password="wrong", new_password="Newpass123")
        )
    mock_db["users"].update_one.assert_not_awaited()


async def test_change_password_stores_new_hash(mock_db):
    mock_db["users"].find_one = AsyncMock(return_value=_user())
    mock_db["users"].update_one = AsyncMock()

    await user_crud.change_password(
        mock_db, USER_ID, PasswordChange(current_password=PASSWORD, new_password="Newpass123")
    )

    stored = mock_db["users"].update_one.await_args.args[1]["$set"]["password_hash"]
    assert verify_password("Newpass123", stored)


async def test_get_usernames_ignores_malformed_ids(mock_db):
    mock_db["users"].find = MagicMock()
    assert await user_crud.get_usernames(mock_db, ["bad"]) == {}
    mock_db["users"].find.assert_not_called()


# ---------- /api/users ----------
async def test_profile_hides_password_hash(client, mock_db, user_headers):
    mock_db["users"].find_one = AsyncMock(return_value=_user())
    resp = await client.get("/api/users/profile", headers=user_headers)

    assert resp.status_code == 200
    body = resp.json()
    assert body["username"] == "alice"
    assert "passwordHash" not in body


async def test_update_profile_sets_only_sent_fields(client, mock_db, user_headers):
    users = mock_db["users"]
    users.update_one = AsyncMock()
    users.find_one = AsyncMock(return_value=_user(display_name="Al"))

    resp = await client.put("/api/users/profile", json={"displayName": "Al"}, headers=user_headers)

    assert resp.status_code == 200
    assert resp.json()["displayName"] == "Al"
    assert users.update_one.await_args.args[1] == {"$set": {"display_name": "Al"}}


async def test_password_change_rejects_weak_password(client, user_headers):
    resp = await client.put(
        "/api/users/password",
        json={"currentPassword": PASSWORD, "newPassword": "short"},
        headers=user_headers,
    )
    assert resp.status_code == 400


async def test_password_change_with_wrong_current_is_401(client, mock_db, user_headers):
    mock_db["users"].find_one = AsyncMock(return_value=_user())
    resp = await client.put(
        "/api/users/password",
        json={"currentPassword": "nope", "newPassword": "Newpass123"},
        headers=user_headers,
    )
    assert resp.status_code == 401


async def test_user_list_is_admin_only(client, user_headers):
    resp = await client.get("/api/users", headers=user_headers)
    assert resp.status_code == 403


async def test_admin_lists_users(client, mock_db, admin_headers):
    users = mock_db["users"]
    users.count_documents = AsyncMock(return_value=3)
    users.find = MagicMock(return_value=cursor_of([_user()]))

    resp = await client.get("/api/users", params={"limit": 2}, headers=admin_headers)

    assert resp.status_code == 200
    body = resp.json()
    assert body["total"] == 3
    assert body["totalPages"] == 2
    assert body["users"][0]["email"] == "alice@mail.com"


async def test_owner_reads_own_account(client, mock_db, user_headers):
    mock_db["users"].find_one = AsyncMock(return_value=_user())
    resp = await client.get(f"/api/users/{USER_ID}", headers=user_headers)
    assert resp.status_code == 200
    assert resp.json()["id"] == USER_ID


async def test_other_account_is_forbidden(client, mock_db, user_headers):
    mock_db["users"].find_one = AsyncMock(return_value=_user(OTHER_USER_ID, username="bob"))
    resp = await client.get(f"/api/users/{OTHER_USER_ID}", headers=user_headers)
    assert resp.status_code == 403


async def test_owner_deletes_account(client, mock_db, user_headers):
    users = mock_db["users"]
    users.find_one = AsyncMock(return_value=_user())
    users.delete_one = AsyncMock(return_value=MagicMock(deleted_count=1))

    resp = await client.delete(f"/api/users/{USER_ID}", headers=user_headers)

    assert resp.status_code == 204
    assert users.delete_one.await_args.args[0] == {"_id": ObjectId(USER_ID)}


async def test_admin_delete_of_missing_account(client, mock_db, admin_headers):
    mock_db["users"].delete_one = AsyncMock(return_value=MagicMock(deleted_count=0))
    resp = await client.delete(f"/api/users/{OTHER_USER_ID}", headers=admin_headers)
    assert resp.status_code == 404
