# backend/mindfulness/crud/group_sessions.py
from typing import List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from mindfulness.core.errors import ForbiddenError, NotFoundError, ValidationError
from mindfulness.crud.common import ensure_aware_utc, safe_object_id, utcnow
from mindfulness.crud.meditations import meditation_exists
from mindfulness.crud.users import require_user
from mindfulness.models.social import (
    GroupSessionInDB,
    GroupSessionStatus,
    Participant,
    ParticipantStatus,
)
from mindfulness.schemas.social import GroupSessionCreate, GroupSessionRead


def get_group_sessions_collection(db: AsyncIOMotorDatabase):
    return db["group_sessions"]


def to_model(doc) -> GroupSessionInDB:
    return GroupSessionInDB(**doc)


def serialize_group_session(doc) -> GroupSessionRead:
    return GroupSessionRead(**to_model(doc).model_dump())


async def load_group_session(db: AsyncIOMotorDatabase, session_id: str) -> dict:
    doc = await get_group_sessions_collection(db).find_one({"_id": safe_object_id(session_id, "session id")})
    if not doc:
        raise NotFoundError("Session not found")
    return doc


def _participant(doc: dict, user_id: str, status: ParticipantStatus) -> Optional[dict]:
    for p in doc.get("participants", []):
        if p["user_id"] == user_id and p["status"] == status.value:
            return p
    return None


# ---------- CREATE ----------
async def create_group_session(
    db: AsyncIOMotorDatabase, host_id: str, data: GroupSessionCreate
) -> GroupSessionRead:
    scheduled = ensure_aware_utc(data.scheduled_time)
    now = utcnow()
    if scheduled <= now:
        raise ValidationError("Cannot schedule session in the past")
    if data.meditation_id and not await meditation_exists(db, data.meditation_id):
        raise NotFoundError("Meditation not found")

    session = GroupSessionInDB(
        host_id=host_id,
        meditation_id=data.meditation_id,
        title=data.title,
        description=data.description,
        scheduled_time=scheduled,
        duration=data.duration,
        max_participants=data.max_participants,
        is_private=data.is_private,
        allowed_participants=data.allowed_participants,
        participants=[Participant(user_id=host_id, joined_at=now)],
        created_at=now,
    )
    col = get_group_sessions_collection(db)
    result = await col.insert_one(session.to_document())
    return serialize_group_session(await col.find_one({"_id": result.inserted_id}))


# ---------- READ ----------
async def get_group_session(db: AsyncIOMotorDatabase, session_id: str) -> GroupSessionRead:
    return serialize_group_session(await load_group_session(db, session_id))


async def list_upcoming(db: AsyncIOMotorDatabase, user_id: str, limit: int = 50) -> List[GroupSessionRead]:
    """
    Scheduled future sessions the user may see: public ones, their own,
    their friends' and the private ones that list them.
    """
    user = await require_user(db, user_id)
    query = {
        "status": GroupSessionStatus.SCHEDULED.value,
        "scheduled_time": {"$gt": utcnow()},
        "$or": [
            {"is_private": False},
            {"host_id": {"$in": [user_id] + list(user.friend_ids)}},
            {"allowed_participants": user_id},
        ],
    }
    cursor = get_group_sessions_collection(db).find(query).sort("scheduled_time", 1).limit(limit)
    return [serialize_group_session(d) for d in await cursor.to_list(length=limit)]


async def list_user_sessions(db: AsyncIOMotorDatabase, user_id: str, limit: int = 50) -> List[GroupSessionRead]:
    query = {"$or": [{"host_id": user_id}, {"participants.user_id": user_id}]}
    cursor = get_group_sessions_collection(db).find(query).sort("scheduled_time", -1).limit(limit)
    return [serialize_group_session(d) for d in await cursor.to_list(length=limit)]


# ---------- PARTICIPATION ----------
async def join_group_session(db: AsyncIOMotorDatabase, session_id: str, user_id: str) -> GroupSessionRead:
    doc = await load_group_session(db, session_id)
    session = to_model(doc)

    if session.status != GroupSessionStatus.SCHEDULED.value:
        raise ValidationError("Session is not open for joining")
    if session.is_private and user_id != session.host_id and user_id not in session.allowed_participants:
        raise ValidationError("This session is private")
    if user_id in session.joined_user_ids():
        raise ValidationError("Already joined this session")
    if len(session.joined_user_ids()) >= session.max_participants:
        raise ValidationError("Session is full")

    participant = Participant(user_id=user_id, joined_at=utcnow()).model_dump()
    col = get_group_sessions_collection(db)
    result = await col.update_one(
        {
            "_id": doc["_id"],
            "status": GroupSessionStatus.SCHEDULED.value,
            "participants": {"$not": {"$elemMatch": {"user_id": user_id, "status": ParticipantStatus.JOINED.value}}},
        },
        {"$push": {"participants": participant}},
    )
    if result.matched_count == 0:
        raise ValidationError("Session is not open for joining")
    return serialize_group_session(await col.find_one({"_id": doc["_id"]}))


async def leave_group_session(db: AsyncIOMotorDatabase, session_id: str, user_id: str) -> GroupSessionRead:
    doc = await load_group_session(db, session_id)
    if not _participant(doc, user_id, ParticipantStatus.JOINED):
        raise ValidationError("Participant not found or already left")

    col = get_group_sessions_collection(db)
    await col.update_one(
        {"_id": doc["_id"], "participants": {"$elemMatch": {"user_id": user_id, "status": ParticipantStatus.JOINED.value}}},
        {"$set": {"participants.$.status": ParticipantStatus.LEFT.value}},
    )
    return serialize_group_session(await col.find_one({"_id": doc["_id"]}))


async def complete_participation(db: AsyncIOMotorDatabase, session_id: str, user_id: str) -> GroupSessionRead:
    """
    Mark the participant completed; the session completes once nobody is still joined.
    """
    doc = await load_group_session(db, session_id)
    if doc["status"] != GroupSessionStatus.IN_PROGRESS.value:
        raise ValidationError("Session is not in progress")
    if not _participant(doc, user_id, ParticipantStatus.JOINED):
        raise ValidationError("Participant not found or already completed")

    col = get_group_sessions_collection(db)
    await col.update_one(
        {"_id": doc["_id"], "participants": {"$elemMatch": {"user_id": user_id, "status": ParticipantStatus.JOINED.value}}},
        {"$set": {"participants.$.status": ParticipantStatus.COMPLETED.value}},
    )
    updated = await col.find_one({"_id": doc["_id"]})
    if not any(p["status"] == ParticipantStatus.JOINED.value for p in updated.get("participants", [])):
        await col.update_one(
            {"_id": doc["_id"], "status": GroupSessionStatus.IN_PROGRESS.value},
            {"$set": {"status": GroupSessionStatus.COMPLETED.value, "end_time": utcnow()}},
        )
        updated = await col.find_one({"_id": doc["_id"]})
    return serialize_group_session(updated)


# ---------- HOST ACTIONS ----------
async def _host_transition(
    db: AsyncIOMotorDatabase,
    session_id: str,
    host_id: str,
    allowed_from: List[GroupSessionStatus],
    target: GroupSessionStatus,
    error: str,
) -> GroupSessionRead:
    doc = await load_group_session(db, session_id)
    if doc["host_id"] != host_id:
        raise ForbiddenError("Only the host can manage this session")

    update: dict = {"status": target.value}
    if target in (GroupSessionStatus.COMPLETED, GroupSessionStatus.CANCELLED):
        update["end_time"] = utcnow()

    col = get_group_sessions_collection(db)
    result = await col.update_one(
        {"_id": doc["_id"], "status": {"$in": [s.value for s in allowed_from]}},
        {"$set": update},
    )
    if result.matched_count == 0:
        raise ValidationError(error)
    return serialize_group_session(await col.find_one({"_id": doc["_id"]}))


async def start_group_session(db: AsyncIOMotorDatabase, session_id: str, host_id: str) -> GroupSessionRead:
    return await _host_transition(
        db, session_id, host_id,
        [GroupSessionStatus.SCHEDULED], GroupSessionStatus.IN_PROGRESS,
        "Session cannot be started",
    )


async def end_group_session(db: AsyncIOMotorDatabase, session_id: str, host_id: str) -> GroupSessionRead:
    return await _host_transition(
        db, session_id, host_id,
        [GroupSessionStatus.IN_PROGRESS], GroupSessionStatus.COMPLETED,
        "Session must be in progress to end it",
    )


async def cancel_group_session(db: AsyncIOMotorDatabase, session_id: str, host_id: str) -> GroupSessionRead:
    return await _host_transition(
        db, session_id, host_id,
        [GroupSessionStatus.SCHEDULED, GroupSessionStatus.IN_PROGRESS], GroupSessionStatus.CANCELLED,
        "Session cannot be cancelled",
    )
