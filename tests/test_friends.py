from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
from bson import ObjectId

from mindfulness.core.errors import ConflictError, ForbiddenError, ValidationError
from mindfulness.crud import friends as friend_crud

from conftest import OTHER_USER_ID, USER_ID, cursor_of

REQUEST_ID = "64b7f0c2a1b2c3d4e5f607b0"


def _user(user_id, username, **overrides):
    doc = {
        "_id": ObjectId(user_id),
        "username": username,
        "email": f"{username}@mail.com",
        "password_hash": "x",
    }
    doc.update(overrides)
    return doc


def _request(**overrides):
    doc = {
        "_id": ObjectId(REQUEST_ID),
        "requester_id": OTHER_USER_ID,
        "recipient_id": USER_ID,
        "status": "pending",
        "created_at": datetime(2024, 3, 1, tzinfo=timezone.utc),
    }
    doc.update(overrides)
    return doc


@pytest.fixture
def db():
    users = MagicMock()
    users.update_one = AsyncMock()
    requests = MagicMock()
    requests.update_one = AsyncMock(return_value=MagicMock(matched_count=1))
    return {"users": users, "friend_requests": requests}


def _with_users(db, alice=None, bob=None):
    by_id = {
        ObjectId(USER_ID): _user(USER_ID, "alice", **(alice or {})),
        ObjectId(OTHER_USER_ID): _user(OTHER_USER_ID, "bob", **(bob or {})),
    }

    async def find_one(query, *args):
        return by_id.get(query["_id"])

    db["users"].find_one = AsyncMock(side_effect=find_one)


# ---------- requests ----------
async def test_request_to_self_is_rejected(db):
    with pytest.raises(ValidationError, match="Cannot send friend request to yourself"):
        await friend_crud.send_request(db, USER_ID, USER_ID)


async def test_request_to_blocking_user_is_rejected(db):
    _with_users(db, bob={"blocked_user_ids": [USER_ID]})
    with pytest.raises(ValidationError, match="Cannot send friend request to this user"):
        await friend_crud.send_request(db, USER_ID, OTHER_USER_ID)


async def test_request_between_friends_is_rejected(db):
    _with_users(db, alice={"friend_ids": [OTHER_USER_ID]})
    with pytest.raises(ValidationError, match="Users are already friends"):
        await friend_crud.send_request(db, USER_ID, OTHER_USER_ID)


async def test_pending_request_in_either_direction_conflicts(db):
    _with_users(db)
    db["friend_requests"].find_one = AsyncMock(return_value=_request())

    with pytest.raises(ConflictError):
        await friend_crud.send_request(db, USER_ID, OTHER_USER_ID)

    query = db["friend_requests"].find_one.await_args.args[0]
    assert {"requester_id": OTHER_USER_ID, "recipient_id": USER_ID} in query["$or"]
    assert query["status"] == "pending"


async def test_send_request_stores_pending(db):
    _with_users(db)
    requests = db["friend_requests"]
    requests.find_one = AsyncMock(side_effect=[None, _request(requester_id=USER_ID, recipient_id=OTHER_USER_ID)])
    requests.insert_one = AsyncMock(return_value=MagicMock(inserted_id=ObjectId(REQUEST_ID)))

    result = await friend_crud.send_request(db, USER_ID, OTHER_USER_ID)

    stored = requests.insert_one.await_args.args[0]
    assert stored["status"] == "pending"
    assert result.recipient_id == OTHER_USER_ID


async def test_only_recipient_may_respond(db):
    db["friend_requests"].find_one = AsyncMock(return_value=_request())
    with pytest.raises(ForbiddenError):
        await friend_crud.accept_request(db, REQUEST_ID, OTHER_USER_ID)


async def test_answered_request_cannot_be_accepted_again(db):
    db["friend_requests"].find_one = AsyncMock(return_value=_request(status="rejected"))
    db["friend_requests"].update_one = AsyncMock(return_value=MagicMock(matched_count=0))

    with pytest.raises(ValidationError, match="no longer pending"):
        await friend_crud.accept_request(db, REQUEST_ID, USER_ID)
    db["users"].update_one.assert_not_awaited()


async def test_accept_links_both_users(db):
    db["friend_requests"].find_one = AsyncMock(side_effect=[_request(), _request(status="accepted")])

    result = await friend_crud.accept_request(db, REQUEST_ID, USER_ID)

    assert result.status == "accepted"
    updates = [c.args for c in db["users"].update_one.await_args_list]
    assert updates == [
        ({"_id": ObjectId(OTHER_USER_ID)}, {"$addToSet": {"friend_ids": USER_ID}}),
        ({"_id": ObjectId(USER_ID)}, {"$addToSet": {"friend_ids": OTHER_USER_ID}}),
    ]


# ---------- friends ----------
async def test_list_friends(db):
    _with_users(db, alice={"friend_ids": [OTHER_USER_ID]})
    db["users"].find = MagicMock(
        return_value=cursor_of([{"_id": ObjectId(OTHER_USER_ID), "username": "bob", "display_name": "Bobby"}])
    )

    friends = await friend_crud.list_friends(db, USER_ID)

    assert [(f.id, f.display_name) for f in friends] == [(OTHER_USER_ID, "Bobby")]


async def test_remove_non_friend(db):
    db["users"].find_one = AsyncMock(side_effect=[_user(OTHER_USER_ID, "bob"), None])
    with pytest.raises(ValidationError, match="Users are not friends"):
        await friend_crud.remove_friend(db, USER_ID, OTHER_USER_ID)


async def test_block_drops_friendship_and_pending_requests(db):
    _with_users(db)
    db["friend_requests"].delete_many = AsyncMock()

    await friend_crud.block_user(db, USER_ID, OTHER_USER_ID)

    own_filter, own_update = db["users"].update_one.await_args_list[0].args
    assert own_filter == {"_id": ObjectId(USER_ID)}
    assert own_update == {"$addToSet": {"blocked_user_ids": OTHER_USER_ID}, "$pull": {"friend_ids": OTHER_USER_ID}}
    assert db["friend_requests"].delete_many.await_args.args[0]["status"] == "pending"


async def test_block_self_is_rejected(db):
    with pytest.raises(ValidationError, match="Cannot block yourself"):
        await friend_crud.block_user(db, USER_ID, USER_ID)


# ---------- /api/friends ----------
async def test_send_request_endpoint_rejects_self(client, user_headers):
    resp = await client.post("/api/friends/requests", json={"recipientId": USER_ID}, headers=user_headers)
    assert resp.status_code == 400


async def test_pending_requests_endpoint(client, mock_db, user_headers):
    mock_db["friend_requests"].find = MagicMock(return_value=cursor_of([_request()]))
    resp = await client.get("/api/friends/requests", headers=user_headers)

    assert resp.status_code == 200
    assert resp.json()[0]["requesterId"] == OTHER_USER_ID
    assert mock_db["friend_requests"].find.call_args.args[0] == {"recipient_id": USER_ID, "status": "pending"}
