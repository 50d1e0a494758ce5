# backend/mindfulness/crud/chat.py
from datetime import datetime
from typing import List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from mindfulness.core.errors import ForbiddenError, ValidationError
from mindfulness.crud.common import ensure_aware_utc, utcnow
from mindfulness.crud.group_sessions import load_group_session
from mindfulness.crud.users import get_usernames
from mindfulness.models.social import (
    ChatMessageInDB,
    GroupSessionStatus,
    MessageType,
    ParticipantStatus,
)
from mindfulness.schemas.social import ChatMessageRead, ChatParticipant


def get_chat_messages_collection(db: AsyncIOMotorDatabase):
    return db["chat_messages"]


def serialize_message(doc) -> ChatMessageRead:
    m = ChatMessageInDB(**doc)
    return ChatMessageRead(**m.model_dump())


def _is_member(session: dict, user_id: str) -> bool:
    if session["host_id"] == user_id:
        return True
    return any(
        p["user_id"] == user_id and p["status"] == ParticipantStatus.JOINED.value
        for p in session.get("participants", [])
    )


# ---------- CREATE ----------
async def add_message(
    db: AsyncIOMotorDatabase,
    session_id: str,
    sender_id: Optional[str],
    content: str,
    type_: MessageType = MessageType.TEXT,
) -> ChatMessageRead:
    """
    Persist one message in a group session.
    System messages are attributed to the host and skip the membership check.
    """
    session = await load_group_session(db, session_id)
    is_system = MessageType(type_) == MessageType.SYSTEM

    if not is_system:
        if session["status"] == GroupSessionStatus.CANCELLED.value:
            raise ValidationError("Cannot send messages to a cancelled session")
        if not sender_id or not _is_member(session, sender_id):
            raise ForbiddenError("You are not a participant in this session")

    message = ChatMessageInDB(
        session_id=str(session["_id"]),
        sender_id=session["host_id"] if is_system else sender_id,
        content=content,
        type=MessageType(type_),
        created_at=utcnow(),
    )
    col = get_chat_messages_collection(db)
    result = await col.insert_one(message.to_document())
    message.id = str(result.inserted_id)
    return ChatMessageRead(**message.model_dump())


async def add_system_message(db: AsyncIOMotorDatabase, session_id: str, content: str) -> ChatMessageRead:
    return await add_message(db, session_id, None, content, MessageType.SYSTEM)


# ---------- READ ----------
async def get_messages(
    db: AsyncIOMotorDatabase,
    session_id: str,
    limit: int = 50,
    before: Optional[datetime] = None,
) -> List[ChatMessageRead]:
    """Newest `limit` messages (older than `before`), returned oldest first."""
    session = await load_group_session(db, session_id)
    query: dict = {"session_id": str(session["_id"])}
    if before:
        query["created_at"] = {"$lt": ensure_aware_utc(before)}

    cursor = get_chat_messages_collection(db).find(query).sort("created_at", -1).limit(limit)
    docs = await cursor.to_list(length=limit)
    return [serialize_message(d) for d in reversed(docs)]


async def get_participants(db: AsyncIOMotorDatabase, session_id: str) -> List[ChatParticipant]:
    session = await load_group_session(db, session_id)
    user_ids = [session["host_id"]] + [
        p["user_id"]
        for p in session.get("participants", [])
        if p["status"] == ParticipantStatus.JOINED.value and p["user_id"] != session["host_id"]
    ]
    names = await get_usernames(db, user_ids)
    return [
        ChatParticipant(user_id=u, username=names.get(u), is_host=u == session["host_id"])
        for u in user_ids
    ]
