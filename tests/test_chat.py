from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from bson import ObjectId

from mindfulness.core.errors import ForbiddenError, ValidationError
from mindfulness.crud import chat as chat_crud
from mindfulness.models.social import MessageType
from mindfulness.schemas.social import ChatMessageRead

from conftest import OTHER_USER_ID, USER_ID

SESSION_OID = ObjectId("64b7f0c2a1b2c3d4e5f60730")
MESSAGE_OID = ObjectId("64b7f0c2a1b2c3d4e5f60740")
NOW = datetime(2024, 3, 1, 12, tzinfo=timezone.utc)


def _session(status="in_progress", participants=None):
    return {
        "_id": SESSION_OID,
        "host_id": USER_ID,
        "status": status,
        "participants": participants or [],
    }


@pytest.fixture
def db():
    sessions = MagicMock(name="group_sessions")
    messages = MagicMock(name="chat_messages")
    messages.insert_one = AsyncMock(return_value=MagicMock(inserted_id=MESSAGE_OID))
    return {"group_sessions": sessions, "chat_messages": messages}


async def test_non_participant_cannot_post(db):
    db["group_sessions"].find_one = AsyncMock(return_value=_session())
    with pytest.raises(ForbiddenError, match="You are not a participant in this session"):
        await chat_crud.add_message(db, str(SESSION_OID), OTHER_USER_ID, "hi")
    db["chat_messages"].insert_one.assert_not_awaited()


async def test_left_participant_cannot_post(db):
    db["group_sessions"].find_one = AsyncMock(
        return_value=_session(participants=[{"user_id": OTHER_USER_ID, "status": "left", "joined_at": NOW}])
    )
    with pytest.raises(ForbiddenError):
        await chat_crud.add_message(db, str(SESSION_OID), OTHER_USER_ID, "hi")


async def test_cancelled_session_rejects_messages(db):
    db["group_sessions"].find_one = AsyncMock(return_value=_session(status="cancelled"))
    with pytest.raises(ValidationError, match="Cannot send messages to a cancelled session"):
        await chat_crud.add_message(db, str(SESSION_OID), USER_ID, "hi")


async def test_participant_message_is_persisted(db):
    db["group_sessions"].find_one = AsyncMock(
        return_value=_session(participants=[{"user_id": OTHER_USER_ID, "status": "joined", "joined_at": NOW}])
    )
    message = await chat_crud.add_message(db, str(SESSION_OID), OTHER_USER_ID, "hello")

    assert message.id == str(MESSAGE_OID)
    assert message.sender_id == OTHER_USER_ID
    assert message.type == MessageType.TEXT
    stored = db["chat_messages"].insert_one.await_args.args[0]
    assert stored["session_id"] == str(SESSION_OID)
    assert stored["type"] == "text"


async def test_system_message_is_attributed_to_host(db):
    db["group_sessions"].find_one = AsyncMock(return_value=_session(status="cancelled"))
    message = await chat_crud.add_system_message(db, str(SESSION_OID), "Session has been cancelled")
    assert message.sender_id == USER_ID
    assert message.type == MessageType.SYSTEM


async def test_rest_message_is_broadcast_to_room(client, app, user_headers):
    message = ChatMessageRead(
        id=str(MESSAGE_OID),
        session_id=str(SESSION_OID),
        sender_id=USER_ID,
        content="hello",
        type=MessageType.TEXT,
        created_at=NOW,
    )
    app.state.gateway.sio.emit = AsyncMock()

    with patch("mindfulness.crud.chat.add_message", new=AsyncMock(return_value=message)):
        resp = await client.post(
            f"/api/chat/sessions/{SESSION_OID}/messages", json={"content": "hello"}, headers=user_headers
        )

    assert resp.status_code == 201
    assert resp.json()["content"] == "hello"
    event, payload = app.state.gateway.sio.emit.await_args.args
    assert event == "new_message"
    assert payload["username"] == "alice"
    assert app.state.gateway.sio.emit.await_args.kwargs == {"room": str(SESSION_OID)}


async def test_rest_blank_message_is_400(client, user_headers):
    resp = await client.post(
        f"/api/chat/sessions/{SESSION_OID}/messages", json={"content": "   "}, headers=user_headers
    )
    assert resp.status_code == 400
