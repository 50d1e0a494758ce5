# backend/mindfulness/crud/analytics.py
import math
from datetime import datetime, timedelta
from typing import List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from mindfulness.core.cache import CatalogCache
from mindfulness.crud.common import ensure_aware_utc, utcnow
from mindfulness.crud.meditation_sessions import (
    get_meditation_sessions_collection,
    serialize_meditation_session,
)
from mindfulness.models.session import SessionStatus, mood_improved
from mindfulness.schemas.analytics import (
    CacheCounters,
    CacheStatsSnapshot,
    CacheTypeStats,
    MoodProgress,
    SessionHistory,
    SessionSummary,
)


def get_cache_stats_collection(db: AsyncIOMotorDatabase):
    return db["cache_stats"]


# ---------- SESSION ANALYTICS ----------
async def get_session_summary(db: AsyncIOMotorDatabase, user_id: str) -> SessionSummary:
    pipeline = [
        {"$match": {"user_id": user_id, "status": SessionStatus.COMPLETED.value}},
        {
            "$group": {
                "_id": None,
                "count": {"$sum": 1},
                "minutes": {"$sum": "$duration_completed"},
                "focus": {"$avg": "$focus_score"},
                "interruptions": {"$sum": "$interruptions"},
            }
        },
    ]
    rows = await get_meditation_sessions_collection(db).aggregate(pipeline).to_list(length=1)
    if not rows:
        return SessionSummary()
    row = rows[0]
    return SessionSummary(
        total_sessions=row["count"],
        total_minutes=row["minutes"] or 0,
        average_focus_score=round(row["focus"] or 0.0, 2),
        total_interruptions=row["interruptions"] or 0,
    )


async def get_session_history(
    db: AsyncIOMotorDatabase, user_id: str, page: int = 1, limit: int = 10
) -> SessionHistory:
    col = get_meditation_sessions_collection(db)
    query = {"user_id": user_id}
    total = await col.count_documents(query)
    cursor = col.find(query).sort("start_time", -1).skip((page - 1) * limit).limit(limit)
    docs = await cursor.to_list(length=limit)
    return SessionHistory(
        sessions=[serialize_meditation_session(d) for d in docs],
        total_sessions=total,
        total_pages=math.ceil(total / limit) if limit else 0,
        page=page,
    )


async def get_mood_progress(db: AsyncIOMotorDatabase, user_id: str, days: int = 30) -> MoodProgress:
    since = utcnow() - timedelta(days=days)
    docs = await get_meditation_sessions_collection(db).find(
        {
            "user_id": user_id,
            "status": SessionStatus.COMPLETED.value,
            "start_time": {"$gte": since},
            "mood_before": {"$ne": None},
            "mood_after": {"$ne": None},
        },
        {"mood_before": 1, "mood_after": 1},
    ).to_list(length=None)
    if not docs:
        return MoodProgress()
    improved = sum(1 for d in docs if mood_improved(d["mood_before"], d["mood_after"]))
    return MoodProgress(
        total_improved=improved,
        total_sessions=len(docs),
        improvement_rate=round(improved / len(docs) * 100, 2),
    )


# ---------- CACHE STATS ----------
def _type_stats(cache_type: str, categories: dict) -> CacheTypeStats:
    counters = {name: CacheCounters(**values) for name, values in categories.items()}
    overall = counters.pop("overall", CacheCounters())
    return CacheTypeStats(cache_type=cache_type, overall=overall, categories=counters)


def current_cache_stats(cache: CatalogCache, cache_type: Optional[str] = None) -> List[CacheTypeStats]:
    return [_type_stats(t, cats) for t, cats in cache.stats(cache_type).items()]


async def save_cache_snapshot(db: AsyncIOMotorDatabase, cache: CatalogCache) -> int:
    docs = cache.snapshot()
    if not docs:
        return 0
    result = await get_cache_stats_collection(db).insert_many(docs)
    return len(result.inserted_ids)


async def get_cache_history(
    db: AsyncIOMotorDatabase,
    cache_type: Optional[str] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    limit: int = 100,
) -> List[CacheStatsSnapshot]:
    query: dict = {}
    if cache_type:
        query["cache_type"] = cache_type
    ts: dict = {}
    if start_date:
        ts["$gte"] = ensure_aware_utc(start_date)
    if end_date:
        ts["$lte"] = ensure_aware_utc(end_date)
    if ts:
        query["timestamp"] = ts

    cursor = get_cache_stats_collection(db).find(query).sort("timestamp", -1).limit(limit)
    docs = await cursor.to_list(length=limit)
    snapshots = []
    for d in docs:
        stats = _type_stats(d["cache_type"], d.get("stats", {}))
        snapshots.append(
            CacheStatsSnapshot(
                id=str(d["_id"]),
                timestamp=d["timestamp"],
                cache_type=d["cache_type"],
                overall=stats.overall,
                categories=stats.categories,
            )
        )
    return snapshots
