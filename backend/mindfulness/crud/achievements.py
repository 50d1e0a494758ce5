# backend/mindfulness/crud/achievements.py
from typing import List, Optional

import structlog
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument, UpdateOne

from mindfulness.crud.common import ensure_aware_utc, safe_object_id, utcnow
from mindfulness.crud.users import get_usernames
from mindfulness.models.achievement import ACHIEVEMENT_CATALOG, AchievementInDB, AchievementType
from mindfulness.models.session import mood_improved
from mindfulness.schemas.achievement import (
    AchievementPoints,
    AchievementRead,
    Leaderboard,
    LeaderboardEntry,
)
from mindfulness.schemas.session import MeditationSessionRead

logger = structlog.get_logger(__name__)

EARLY_BIRD_HOUR = 8
NIGHT_OWL_HOUR = 22
MARATHON_MINUTES = 30
SOCIAL_MIN_PARTICIPANTS = 3


def get_achievements_collection(db: AsyncIOMotorDatabase):
    return db["achievements"]


def serialize_achievement(doc) -> AchievementRead:
    a = AchievementInDB(**doc)
    return AchievementRead(**a.model_dump())


# ---------- CREATE ----------
async def seed_user_achievements(db: AsyncIOMotorDatabase, user_id: str) -> None:
    """
    Upsert the whole catalog for a user. Running it twice changes nothing.
    """
    ops = [
        UpdateOne(
            {"user_id": user_id, "type": d.type.value},
            {
                "$setOnInsert": {
                    "user_id": user_id,
                    "type": d.type.value,
                    "title": d.title,
                    "description": d.description,
                    "points": d.points,
                    "target": d.target,
                    "progress": 0,
                    "completed": False,
                    "completed_at": None,
                }
            },
            upsert=True,
        )
        for d in ACHIEVEMENT_CATALOG.values()
    ]
    await get_achievements_collection(db).bulk_write(ops, ordered=False)


# ---------- UPDATE ----------
async def increment_achievement(db: AsyncIOMotorDatabase, user_id: str, type_: AchievementType) -> None:
    """
    +1 progress on an open achievement; completes it when the target is reached.
    """
    col = get_achievements_collection(db)
    target = ACHIEVEMENT_CATALOG[AchievementType(type_)].target
    doc = await col.find_one_and_update(
        {"user_id": user_id, "type": AchievementType(type_).value, "completed": False},
        {"$inc": {"progress": 1}},
        return_document=ReturnDocument.AFTER,
    )
    if doc and doc.get("progress", 0) >= target:
        await col.update_one(
            {"_id": doc["_id"], "completed": False},
            {"$set": {"completed": True, "completed_at": utcnow(), "progress": target}},
        )
        logger.info("Achievement completed", user_id=user_id, type=AchievementType(type_).value)


async def set_achievement_progress(
    db: AsyncIOMotorDatabase, user_id: str, type_: AchievementType, progress: int
) -> None:
    """For achievements measured by a value (streak length) rather than a count."""
    definition = ACHIEVEMENT_CATALOG[AchievementType(type_)]
    query = {"user_id": user_id, "type": definition.type.value, "completed": False}
    if progress >= definition.target:
        update: dict = {"$set": {"progress": definition.target, "completed": True, "completed_at": utcnow()}}
    else:
        update = {"$max": {"progress": max(0, progress)}}

    result = await get_achievements_collection(db).update_one(query, update)
    if result.modified_count and progress >= definition.target:
        logger.info("Achievement completed", user_id=user_id, type=definition.type.value)


async def process_meditation_session(
    db: AsyncIOMotorDatabase, session: MeditationSessionRead, streak: int
) -> None:
    """
    Update time, duration, streak and mood achievements after a completed session.
    """
    user_id = session.user_id
    hour = ensure_aware_utc(session.start_time).hour

    if hour < EARLY_BIRD_HOUR:
        await increment_achievement(db, user_id, AchievementType.EARLY_BIRD)
    elif hour >= NIGHT_OWL_HOUR:
        await increment_achievement(db, user_id, AchievementType.NIGHT_OWL)

    if session.duration_completed >= MARATHON_MINUTES:
        await set_achievement_progress(db, user_id, AchievementType.MARATHON_MEDITATOR, 1)

    await set_achievement_progress(db, user_id, AchievementType.WEEK_WARRIOR, streak)
    await set_achievement_progress(db, user_id, AchievementType.ZEN_MASTER, streak)

    if mood_improved(session.mood_before, session.mood_after):
        await increment_achievement(db, user_id, AchievementType.MOOD_LIFTER)


async def process_group_session(db: AsyncIOMotorDatabase, user_id: str, participant_count: int) -> None:
    if participant_count >= SOCIAL_MIN_PARTICIPANTS:
        await increment_achievement(db, user_id, AchievementType.SOCIAL_BUTTERFLY)


# ---------- READ ----------
async def list_achievements(
    db: AsyncIOMotorDatabase, user_id: str, completed: Optional[bool] = None
) -> List[AchievementRead]:
    query: dict = {"user_id": user_id}
    if completed is not None:
        query["completed"] = completed
    docs = await get_achievements_collection(db).find(query).sort("points", 1).to_list(length=None)
    return [serialize_achievement(d) for d in docs]


async def get_achievement(db: AsyncIOMotorDatabase, achievement_id: str) -> Optional[AchievementRead]:
    doc = await get_achievements_collection(db).find_one(
        {"_id": safe_object_id(achievement_id, "achievement id")}
    )
    return serialize_achievement(doc) if doc else None


async def get_points(db: AsyncIOMotorDatabase, user_id: str) -> AchievementPoints:
    pipeline = [
        {"$match": {"user_id": user_id, "completed": True}},
        {"$group": {"_id": None, "points": {"$sum": "$points"}, "count": {"$sum": 1}}},
    ]
    rows = await get_achievements_collection(db).aggregate(pipeline).to_list(length=1)
    if not rows:
        return AchievementPoints()
    return AchievementPoints(total_points=rows[0]["points"], completed_count=rows[0]["count"])


async def get_leaderboard(db: AsyncIOMotorDatabase, limit: int = 10) -> Leaderboard:
    pipeline = [
        {"$match": {"completed": True}},
        {"$group": {"_id": "$user_id", "points": {"$sum": "$points"}, "count": {"$sum": 1}}},
        {"$sort": {"points": -1, "_id": 1}},
        {"$limit": limit},
    ]
    rows = await get_achievements_collection(db).aggregate(pipeline).to_list(length=limit)
    names = await get_usernames(db, [r["_id"] for r in rows])
    return Leaderboard(
        entries=[
            LeaderboardEntry(
                user_id=r["_id"],
                username=names.get(r["_id"]),
                total_points=r["points"],
                completed_count=r["count"],
            )
            for r in rows
        ]
    )


async def resolve_achievement_owner(db: AsyncIOMotorDatabase, achievement_id: str) -> Optional[str]:
    doc = await get_achievements_collection(db).find_one(
        {"_id": safe_object_id(achievement_id, "achievement id")}, {"user_id": 1}
    )
    return doc["user_id"] if doc else None
