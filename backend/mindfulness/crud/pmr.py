# backend/mindfulness/crud/pmr.py
from typing import List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from mindfulness.core.cache import CatalogCache
from mindfulness.core.errors import NotFoundError, ValidationError
from mindfulness.crud.common import ensure_aware_utc, safe_object_id, utcnow
from mindfulness.crud.stress import log_stress_change
from mindfulness.models.session import (
    DEFAULT_MUSCLE_GROUPS,
    MuscleGroup,
    PMRSessionInDB,
    SessionStatus,
)
from mindfulness.schemas.session import (
    MuscleGroupRead,
    PMREffectiveness,
    PMRProgressUpdate,
    PMRSessionComplete,
    PMRSessionCreate,
    PMRSessionRead,
)

CACHE_TYPE = "muscle_groups"


def get_muscle_groups_collection(db: AsyncIOMotorDatabase):
    return db["muscle_groups"]


def get_pmr_sessions_collection(db: AsyncIOMotorDatabase):
    return db["pmr_sessions"]


def serialize_pmr_session(doc) -> PMRSessionRead:
    s = PMRSessionInDB(**doc)
    return PMRSessionRead(**s.model_dump())


async def _load(db: AsyncIOMotorDatabase, session_id: str) -> dict:
    doc = await get_pmr_sessions_collection(db).find_one({"_id": safe_object_id(session_id, "session id")})
    if not doc:
        raise NotFoundError("Session not found")
    return doc


# ---------- MUSCLE GROUPS ----------
async def seed_muscle_groups(db: AsyncIOMotorDatabase) -> None:
    col = get_muscle_groups_collection(db)
    for group in DEFAULT_MUSCLE_GROUPS:
        await col.update_one({"name": group.name}, {"$set": group.to_document()}, upsert=True)


async def list_muscle_groups(db: AsyncIOMotorDatabase, cache: CatalogCache) -> List[MuscleGroupRead]:
    async def load() -> List[MuscleGroupRead]:
        docs = await get_muscle_groups_collection(db).find({}).sort("order", 1).to_list(length=None)
        return [MuscleGroupRead(**MuscleGroup(**d).model_dump()) for d in docs]

    return await cache.get_or_load(CACHE_TYPE, "all", load, category="list")


# ---------- SESSIONS ----------
async def start_session(db: AsyncIOMotorDatabase, user_id: str, data: PMRSessionCreate) -> PMRSessionRead:
    session = PMRSessionInDB(
        user_id=user_id,
        start_time=utcnow(),
        status=SessionStatus.IN_PROGRESS,
        stress_level_before=data.stress_level_before,
        mood_before=data.mood_before,
    )
    col = get_pmr_sessions_collection(db)
    result = await col.insert_one(session.to_document())
    return serialize_pmr_session(await col.find_one({"_id": result.inserted_id}))


async def record_progress(
    db: AsyncIOMotorDatabase, cache: CatalogCache, session_id: str, data: PMRProgressUpdate
) -> PMRSessionRead:
    doc = await _load(db, session_id)
    if doc["status"] != SessionStatus.IN_PROGRESS.value:
        raise ValidationError("Session is not in progress")

    known = {g.name for g in await list_muscle_groups(db, cache)}
    if data.completed_group not in known:
        raise ValidationError("Invalid muscle group name")
    if data.completed_group in doc.get("completed_groups", []):
        raise ValidationError("Muscle group already completed")

    col = get_pmr_sessions_collection(db)
    # $addToSet keeps the list unique even under concurrent updates
    await col.update_one({"_id": doc["_id"]}, {"$addToSet": {"completed_groups": data.completed_group}})
    return serialize_pmr_session(await col.find_one({"_id": doc["_id"]}))


async def complete_session(
    db: AsyncIOMotorDatabase, session_id: str, data: PMRSessionComplete
) -> PMRSessionRead:
    doc = await _load(db, session_id)
    if doc["status"] == SessionStatus.COMPLETED.value:
        raise ValidationError("Session already completed")
    if doc["status"] != SessionStatus.IN_PROGRESS.value:
        raise ValidationError(f"Cannot complete a session that is {doc['status']}")

    end_time = utcnow()
    update_doc = {
        "status": SessionStatus.COMPLETED.value,
        "end_time": end_time,
        "duration": max(0, int((end_time - ensure_aware_utc(doc["start_time"])).total_seconds())),
        "stress_level_after": data.stress_level_after,
    }
    if data.mood_after is not None:
        update_doc["mood_after"] = data.mood_after.value
    if data.notes is not None:
        update_doc["notes"] = data.notes

    col = get_pmr_sessions_collection(db)
    result = await col.update_one(
        {"_id": doc["_id"], "status": SessionStatus.IN_PROGRESS.value}, {"$set": update_doc}
    )
    if result.matched_count == 0:
        raise ValidationError("Session already completed")

    log_stress_change(doc["user_id"], doc.get("stress_level_before"), data.stress_level_after, "pmr")
    return serialize_pmr_session(await col.find_one({"_id": doc["_id"]}))


async def list_sessions(db: AsyncIOMotorDatabase, user_id: str, limit: int = 50) -> List[PMRSessionRead]:
    cursor = get_pmr_sessions_collection(db).find({"user_id": user_id}).sort("start_time", -1).limit(limit)
    docs = await cursor.to_list(length=limit)
    return [serialize_pmr_session(d) for d in docs]


async def get_effectiveness(db: AsyncIOMotorDatabase, user_id: str) -> PMREffectiveness:
    docs = await get_pmr_sessions_collection(db).find(
        {"user_id": user_id, "status": SessionStatus.COMPLETED.value}
    ).to_list(length=None)
    if not docs:
        return PMREffectiveness()

    total_groups = len(DEFAULT_MUSCLE_GROUPS)
    rated = [
        d["stress_level_before"] - d["stress_level_after"]
        for d in docs
        if d.get("stress_level_before") is not None and d.get("stress_level_after") is not None
    ]
    completion = [len(d.get("completed_groups", [])) / total_groups * 100 for d in docs]
    return PMREffectiveness(
        average_stress_reduction=round(sum(rated) / len(rated), 2) if rated else 0.0,
        total_sessions=len(docs),
        average_completion_rate=round(sum(completion) / len(completion), 2),
    )


async def resolve_pmr_session_owner(db: AsyncIOMotorDatabase, session_id: str) -> Optional[str]:
    doc = await get_pmr_sessions_collection(db).find_one(
        {"_id": safe_object_id(session_id, "session id")}, {"user_id": 1}
    )
    return doc["user_id"] if doc else None
