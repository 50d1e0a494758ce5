# backend/mindfulness/crud/meditation_sessions.py
from collections import Counter
from datetime import datetime
from typing import Iterable, List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from mindfulness.core.errors import ConflictError, NotFoundError, ValidationError
from mindfulness.crud.common import ensure_aware_utc, safe_object_id, utcnow
from mindfulness.crud.meditations import meditation_exists
from mindfulness.models.session import (
    MeditationSessionInDB,
    SessionStatus,
    can_transition,
    mood_improved,
)
from mindfulness.schemas.session import (
    MeditationSessionComplete,
    MeditationSessionCreate,
    MeditationSessionRead,
    MeditationStats,
)

TERMINAL_STATUSES = (SessionStatus.COMPLETED, SessionStatus.CANCELLED)


def get_meditation_sessions_collection(db: AsyncIOMotorDatabase):
    return db["meditation_sessions"]


def serialize_meditation_session(doc) -> MeditationSessionRead:
    s = MeditationSessionInDB(**doc)
    return MeditationSessionRead(**s.model_dump())


def compute_focus_score(interruptions: int) -> int:
    """100 minus 5 per interruption, clamped to 0..100."""
    return max(0, min(100, 100 - 5 * max(0, interruptions)))


def calculate_streak(start_times: Iterable[datetime]) -> int:
    """
    Consecutive calendar days (UTC) ending with the most recent completed session.
    Several sessions on one day count once.
    """
    days = sorted({ensure_aware_utc(t).date() for t in start_times if t is not None}, reverse=True)
    if not days:
        return 0

    streak = 1
    current = days[0]
    for day in days[1:]:
        if (current - day).days == 1:
            streak += 1
            current = day
        else:
            break
    return streak


async def _load(db: AsyncIOMotorDatabase, session_id: str) -> dict:
    doc = await get_meditation_sessions_collection(db).find_one(
        {"_id": safe_object_id(session_id, "session id")}
    )
    if not doc:
        raise NotFoundError("Session not found")
    return doc


# ---------- CREATE (START) ----------
async def start_session(
    db: AsyncIOMotorDatabase, user_id: str, data: MeditationSessionCreate
) -> MeditationSessionRead:
    col = get_meditation_sessions_collection(db)

    # one running session per user
    if await col.find_one({"user_id": user_id, "status": SessionStatus.IN_PROGRESS.value}):
        raise ConflictError("You already have a session in progress")

    if data.meditation_id and not await meditation_exists(db, data.meditation_id):
        raise NotFoundError("Meditation not found")

    session = MeditationSessionInDB(
        user_id=user_id,
        meditation_id=data.meditation_id,
        type=data.type,
        start_time=ensure_aware_utc(data.start_time) or utcnow(),
        status=SessionStatus.IN_PROGRESS,
        mood_before=data.mood_before,
        tags=data.tags,
    )
    result = await col.insert_one(session.to_document())
    created = await col.find_one({"_id": result.inserted_id})
    return serialize_meditation_session(created)


# ---------- READ ----------
async def list_sessions(
    db: AsyncIOMotorDatabase,
    user_id: str,
    status: Optional[SessionStatus] = None,
    limit: int = 50,
) -> List[MeditationSessionRead]:
    query: dict = {"user_id": user_id}
    if status:
        query["status"] = SessionStatus(status).value
    cursor = get_meditation_sessions_collection(db).find(query).sort("start_time", -1).limit(limit)
    docs = await cursor.to_list(length=limit)
    return [serialize_meditation_session(d) for d in docs]


async def get_active_session(db: AsyncIOMotorDatabase, user_id: str) -> Optional[MeditationSessionRead]:
    doc = await get_meditation_sessions_collection(db).find_one(
        {"user_id": user_id, "status": SessionStatus.IN_PROGRESS.value}
    )
    return serialize_meditation_session(doc) if doc else None


async def get_session(db: AsyncIOMotorDatabase, session_id: str) -> MeditationSessionRead:
    return serialize_meditation_session(await _load(db, session_id))


# ---------- UPDATE ----------
async def record_interruption(db: AsyncIOMotorDatabase, session_id: str) -> MeditationSessionRead:
    col = get_meditation_sessions_collection(db)
    oid = safe_object_id(session_id, "session id")

    result = await col.update_one(
        {"_id": oid, "status": SessionStatus.IN_PROGRESS.value},
        {"$inc": {"interruptions": 1}},
    )
    if result.matched_count == 0:
        await _load(db, session_id)  # 404 when missing
        raise ValidationError("Session is not in progress")
    return serialize_meditation_session(await col.find_one({"_id": oid}))


async def complete_session(
    db: AsyncIOMotorDatabase, session_id: str, data: MeditationSessionComplete
) -> MeditationSessionRead:
    col = get_meditation_sessions_collection(db)
    doc = await _load(db, session_id)

    current = SessionStatus(doc["status"])
    if not can_transition(current, SessionStatus.COMPLETED):
        raise ValidationError(f"Cannot complete a session that is {current.value}")

    start_time = ensure_aware_utc(doc["start_time"])
    end_time = ensure_aware_utc(data.end_time) or utcnow()
    if end_time < start_time:
        raise ValidationError("endTime must be after startTime")

    seconds = int((end_time - start_time).total_seconds())
    update_doc = {
        "status": SessionStatus.COMPLETED.value,
        "end_time": end_time,
        "duration": seconds,
        "duration_completed": seconds // 60,
        "focus_score": compute_focus_score(doc.get("interruptions", 0)),
    }
    if data.mood_after is not None:
        update_doc["mood_after"] = data.mood_after.value
    if data.notes is not None:
        update_doc["notes"] = data.notes

    # status guard: a concurrent complete/cancel wins once
    result = await col.update_one(
        {"_id": doc["_id"], "status": current.value}, {"$set": update_doc}
    )
    if result.matched_count == 0:
        raise ValidationError("Session status changed concurrently")
    return serialize_meditation_session(await col.find_one({"_id": doc["_id"]}))


async def update_status(
    db: AsyncIOMotorDatabase, session_id: str, target: SessionStatus
) -> MeditationSessionRead:
    col = get_meditation_sessions_collection(db)
    doc = await _load(db, session_id)

    current = SessionStatus(doc["status"])
    target = SessionStatus(target)
    if not can_transition(current, target):
        raise ValidationError(f"Cannot transition session from {current.value} to {target.value}")

    update_doc: dict = {"status": target.value}
    if target in TERMINAL_STATUSES:
        now = utcnow()
        update_doc["end_time"] = now
        update_doc["duration"] = max(0, int((now - ensure_aware_utc(doc["start_time"])).total_seconds()))

    result = await col.update_one({"_id": doc["_id"], "status": current.value}, {"$set": update_doc})
    if result.matched_count == 0:
        raise ValidationError("Session status changed concurrently")
    return serialize_meditation_session(await col.find_one({"_id": doc["_id"]}))


# ---------- DELETE ----------
async def delete_session(db: AsyncIOMotorDatabase, session_id: str) -> None:
    result = await get_meditation_sessions_collection(db).delete_one(
        {"_id": safe_object_id(session_id, "session id")}
    )
    if result.deleted_count == 0:
        raise NotFoundError("Session not found")


# ---------- STATS ----------
async def get_current_streak(db: AsyncIOMotorDatabase, user_id: str) -> int:
    cursor = get_meditation_sessions_collection(db).find(
        {"user_id": user_id, "status": SessionStatus.COMPLETED.value}, {"start_time": 1}
    )
    docs = await cursor.to_list(length=None)
    return calculate_streak(d["start_time"] for d in docs)


async def get_stats(db: AsyncIOMotorDatabase, user_id: str) -> MeditationStats:
    col = get_meditation_sessions_collection(db)
    all_docs = await col.find({"user_id": user_id}).to_list(length=None)
    completed = [d for d in all_docs if d.get("status") == SessionStatus.COMPLETED.value]
    if not completed:
        return MeditationStats()

    total_minutes = sum(d.get("duration_completed", 0) for d in completed)
    types = Counter(d.get("type") for d in completed if d.get("type"))
    with_mood = [d for d in completed if d.get("mood_before") and d.get("mood_after")]
    improved = [d for d in with_mood if mood_improved(d["mood_before"], d["mood_after"])]

    return MeditationStats(
        total_sessions=len(completed),
        total_minutes=total_minutes,
        average_duration=round(total_minutes / len(completed), 2),
        current_streak=calculate_streak(d["start_time"] for d in completed),
        completion_rate=round(len(completed) / len(all_docs) * 100, 2),
        most_common_type=types.most_common(1)[0][0] if types else None,
        mood_improvement_rate=round(len(improved) / len(with_mood) * 100, 2) if with_mood else 0.0,
    )


async def resolve_meditation_session_owner(db: AsyncIOMotorDatabase, session_id: str) -> Optional[str]:
    doc = await get_meditation_sessions_collection(db).find_one(
        {"_id": safe_object_id(session_id, "session id")}, {"user_id": 1}
    )
    return doc["user_id"] if doc else None
