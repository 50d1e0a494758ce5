# backend/mindfulness/crud/breathing.py
from collections import defaultdict
from typing import List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from mindfulness.core.cache import CatalogCache
from mindfulness.core.errors import NotFoundError, ValidationError
from mindfulness.crud.common import ensure_aware_utc, safe_object_id, utcnow
from mindfulness.crud.stress import log_stress_change
from mindfulness.models.session import (
    DEFAULT_BREATHING_PATTERNS,
    BreathingPattern,
    BreathingSessionInDB,
    SessionStatus,
    can_transition,
)
from mindfulness.schemas.session import (
    BreathingEffectiveness,
    BreathingPatternRead,
    BreathingSessionComplete,
    BreathingSessionCreate,
    BreathingSessionRead,
)

CACHE_TYPE = "breathing_patterns"


def get_patterns_collection(db: AsyncIOMotorDatabase):
    return db["breathing_patterns"]


def get_breathing_sessions_collection(db: AsyncIOMotorDatabase):
    return db["breathing_sessions"]


def serialize_breathing_session(doc) -> BreathingSessionRead:
    s = BreathingSessionInDB(**doc)
    return BreathingSessionRead(**s.model_dump())


# ---------- PATTERNS ----------
async def seed_patterns(db: AsyncIOMotorDatabase) -> None:
    """Upsert the built-in patterns at startup."""
    col = get_patterns_collection(db)
    for pattern in DEFAULT_BREATHING_PATTERNS:
        await col.update_one(
            {"name": pattern.name}, {"$set": pattern.to_document()}, upsert=True
        )


async def list_patterns(db: AsyncIOMotorDatabase, cache: CatalogCache) -> List[BreathingPatternRead]:
    async def load() -> List[BreathingPatternRead]:
        docs = await get_patterns_collection(db).find({}).sort("name", 1).to_list(length=None)
        return [BreathingPatternRead(**BreathingPattern(**d).model_dump()) for d in docs]

    return await cache.get_or_load(CACHE_TYPE, "all", load, category="list")


async def get_pattern(db: AsyncIOMotorDatabase, cache: CatalogCache, name: str) -> BreathingPatternRead:
    async def load() -> Optional[BreathingPatternRead]:
        doc = await get_patterns_collection(db).find_one({"name": name})
        return BreathingPatternRead(**BreathingPattern(**doc).model_dump()) if doc else None

    pattern = await cache.get_or_load(CACHE_TYPE, name, load, category="item")
    if pattern is None:
        raise NotFoundError("Breathing pattern not found")
    return pattern


# ---------- SESSIONS ----------
async def start_session(
    db: AsyncIOMotorDatabase, cache: CatalogCache, user_id: str, data: BreathingSessionCreate
) -> BreathingSessionRead:
    pattern = await get_pattern(db, cache, data.pattern_name)

    session = BreathingSessionInDB(
        user_id=user_id,
        pattern_name=pattern.name,
        target_cycles=data.target_cycles or pattern.cycles,
        start_time=utcnow(),
        status=SessionStatus.IN_PROGRESS,
        stress_level_before=data.stress_level_before,
        mood_before=data.mood_before,
    )
    col = get_breathing_sessions_collection(db)
    result = await col.insert_one(session.to_document())
    return serialize_breathing_session(await col.find_one({"_id": result.inserted_id}))


async def complete_session(
    db: AsyncIOMotorDatabase, session_id: str, data: BreathingSessionComplete
) -> BreathingSessionRead:
    col = get_breathing_sessions_collection(db)
    oid = safe_object_id(session_id, "session id")
    doc = await col.find_one({"_id": oid})
    if not doc:
        raise NotFoundError("Session not found")

    current = SessionStatus(doc["status"])
    if current == SessionStatus.COMPLETED:
        raise ValidationError("Session already completed")
    if not can_transition(current, SessionStatus.COMPLETED):
        raise ValidationError(f"Cannot complete a session that is {current.value}")

    end_time = utcnow()
    update_doc = {
        "status": SessionStatus.COMPLETED.value,
        "end_time": end_time,
        "duration": max(0, int((end_time - ensure_aware_utc(doc["start_time"])).total_seconds())),
        "completed_cycles": data.completed_cycles,
        "stress_level_after": data.stress_level_after,
    }
    if data.mood_after is not None:
        update_doc["mood_after"] = data.mood_after.value
    if data.notes is not None:
        update_doc["notes"] = data.notes

    result = await col.update_one({"_id": oid, "status": current.value}, {"$set": update_doc})
    if result.matched_count == 0:
        raise ValidationError("Session already completed")

    log_stress_change(doc["user_id"], doc.get("stress_level_before"), data.stress_level_after, "breathing")
    return serialize_breathing_session(await col.find_one({"_id": oid}))


async def list_sessions(db: AsyncIOMotorDatabase, user_id: str, limit: int = 50) -> List[BreathingSessionRead]:
    cursor = get_breathing_sessions_collection(db).find({"user_id": user_id}).sort("start_time", -1).limit(limit)
    docs = await cursor.to_list(length=limit)
    return [serialize_breathing_session(d) for d in docs]


async def get_effectiveness(db: AsyncIOMotorDatabase, user_id: str) -> BreathingEffectiveness:
    """
    Average stress reduction over completed sessions that carry both levels,
    and the pattern with the best average reduction.
    """
    docs = await get_breathing_sessions_collection(db).find(
        {
            "user_id": user_id,
            "status": SessionStatus.COMPLETED.value,
            "stress_level_before": {"$ne": None},
            "stress_level_after": {"$ne": None},
        }
    ).to_list(length=None)
    if not docs:
        return BreathingEffectiveness()

    by_pattern = defaultdict(list)
    for d in docs:
        by_pattern[d["pattern_name"]].append(d["stress_level_before"] - d["stress_level_after"])

    reductions = [r for values in by_pattern.values() for r in values]
    best = max(by_pattern.items(), key=lambda item: sum(item[1]) / len(item[1]))[0]
    return BreathingEffectiveness(
        average_stress_reduction=round(sum(reductions) / len(reductions), 2),
        total_sessions=len(docs),
        most_effective_pattern=best,
    )


async def resolve_breathing_session_owner(db: AsyncIOMotorDatabase, session_id: str) -> Optional[str]:
    doc = await get_breathing_sessions_collection(db).find_one(
        {"_id": safe_object_id(session_id, "session id")}, {"user_id": 1}
    )
    return doc["user_id"] if doc else None
