# backend/mindfulness/crud/stress.py
from collections import Counter, defaultdict
from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Optional, Sequence

import structlog
from motor.motor_asyncio import AsyncIOMotorDatabase

from mindfulness.core.errors import NotFoundError
from mindfulness.crud.common import ensure_aware_utc, safe_object_id, utcnow
from mindfulness.models.stress import (
    StressAssessmentInDB,
    StressCategory,
    StressPreferencesInDB,
    StressTrend,
    TechniqueType,
    categorize_stress_level,
)
from mindfulness.schemas.stress import (
    StressAssessmentCreate,
    StressAssessmentRead,
    StressAssessmentUpdate,
    StressPatterns,
    StressPreferencesRead,
    StressPreferencesUpdate,
    StressRecommendations,
    StressTrends,
)

logger = structlog.get_logger(__name__)

TREND_BAND = 0.5
TREND_MIN_ENTRIES = 3
WEEKDAYS = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]

_RECOMMENDATIONS: Dict[StressCategory, List[tuple]] = {
    StressCategory.LOW: [
        (TechniqueType.MINDFULNESS, "A short mindfulness check-in keeps stress low"),
        (TechniqueType.JOURNALING, "Write down three things that went well today"),
        (TechniqueType.PHYSICAL_EXERCISE, "A brisk walk helps maintain your balance"),
    ],
    StressCategory.MODERATE: [
        (TechniqueType.BREATHING, "Try 4-7-8 breathing for a few cycles"),
        (TechniqueType.MEDITATION, "A 10 minute body scan meditation"),
        (TechniqueType.PHYSICAL_EXERCISE, "Stretch or take a short walk"),
        (TechniqueType.JOURNALING, "Name what is causing the tension"),
    ],
    StressCategory.HIGH: [
        (TechniqueType.BREATHING, "Box breathing to calm your nervous system right now"),
        (TechniqueType.PROGRESSIVE_MUSCLE_RELAXATION, "Release tension with a full PMR session"),
        (TechniqueType.MEDITATION, "A guided meditation focused on grounding"),
        (TechniqueType.MINDFULNESS, "Notice five things you can see and four you can hear"),
    ],
}


def get_assessments_collection(db: AsyncIOMotorDatabase):
    return db["stress_assessments"]


def get_preferences_collection(db: AsyncIOMotorDatabase):
    return db["stress_preferences"]


def serialize_assessment(doc) -> StressAssessmentRead:
    a = StressAssessmentInDB(**doc)
    return StressAssessmentRead(
        **a.model_dump(),
        stress_category=categorize_stress_level(a.stress_level),
    )


def log_stress_change(user_id: str, before: Optional[int], after: Optional[int], source: str) -> None:
    """Log a before/after pair from a finished breathing or PMR session."""
    if before is None or after is None:
        return
    logger.info(
        "Stress level change",
        user_id=user_id,
        source=source,
        before=before,
        after=after,
        category_before=categorize_stress_level(before).value,
        category_after=categorize_stress_level(after).value,
    )


# ---------- ANALYSIS ----------
def compute_trend(levels: Sequence[int]) -> StressTrend:
    """
    `levels` in chronological order. The later half is compared with the earlier half.
    """
    if len(levels) < TREND_MIN_ENTRIES:
        return StressTrend.STABLE
    mid = len(levels) // 2
    first, second = levels[:mid], levels[mid:]
    first_avg = sum(first) / len(first)
    second_avg = sum(second) / len(second)
    if second_avg < first_avg - TREND_BAND:
        return StressTrend.IMPROVING
    if second_avg > first_avg + TREND_BAND:
        return StressTrend.WORSENING
    return StressTrend.STABLE


def time_of_day(hour: int) -> str:
    if 5 <= hour < 12:
        return "Morning"
    if 12 <= hour < 17:
        return "Afternoon"
    if 17 <= hour < 22:
        return "Evening"
    return "Night"


def top_triggers(assessments: Iterable[dict], n: int = 3) -> List[str]:
    counts = Counter(t for a in assessments for t in a.get("triggers", []))
    return [t for t, _ in counts.most_common(n)]


def _averages(groups: Dict[str, List[int]]) -> Dict[str, float]:
    return {k: round(sum(v) / len(v), 2) for k, v in groups.items() if v}


def analyze_patterns(assessments: Sequence[dict]) -> StressPatterns:
    by_weekday: Dict[str, List[int]] = defaultdict(list)
    by_time: Dict[str, List[int]] = defaultdict(list)
    by_hour: Dict[int, List[int]] = defaultdict(list)

    for a in assessments:
        dt = ensure_aware_utc(a["date"])
        level = a["stress_level"]
        by_weekday[WEEKDAYS[dt.weekday()]].append(level)
        by_time[time_of_day(dt.hour)].append(level)
        by_hour[dt.hour].append(level)

    hour_avgs = {h: sum(v) / len(v) for h, v in by_hour.items()}
    peak = sorted(hour_avgs, key=lambda h: (-hour_avgs[h], h))[:3]

    return StressPatterns(
        weekday_averages=_averages(by_weekday),
        time_of_day_averages=_averages(by_time),
        peak_stress_hours=[f"{h}:00" for h in peak],
        top_triggers=top_triggers(assessments),
    )


# ---------- CREATE ----------
async def create_assessment(
    db: AsyncIOMotorDatabase, user_id: str, data: StressAssessmentCreate
) -> StressAssessmentRead:
    now = utcnow()
    assessment = StressAssessmentInDB(
        user_id=user_id,
        date=ensure_aware_utc(data.date) or now,
        stress_level=data.stress_level,
        physical_symptoms=data.physical_symptoms,
        emotional_symptoms=data.emotional_symptoms,
        triggers=data.triggers,
        notes=data.notes,
        created_at=now,
        updated_at=now,
    )
    col = get_assessments_collection(db)
    result = await col.insert_one(assessment.to_document())
    return serialize_assessment(await col.find_one({"_id": result.inserted_id}))


# ---------- READ ----------
async def list_assessments(
    db: AsyncIOMotorDatabase,
    user_id: str,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    limit: int = 50,
) -> List[StressAssessmentRead]:
    query: dict = {"user_id": user_id}
    date_range: dict = {}
    if start_date:
        date_range["$gte"] = ensure_aware_utc(start_date)
    if end_date:
        date_range["$lte"] = ensure_aware_utc(end_date)
    if date_range:
        query["date"] = date_range

    cursor = get_assessments_collection(db).find(query).sort("date", -1).limit(limit)
    docs = await cursor.to_list(length=limit)
    return [serialize_assessment(d) for d in docs]


async def get_assessment(db: AsyncIOMotorDatabase, assessment_id: str) -> StressAssessmentRead:
    doc = await get_assessments_collection(db).find_one(
        {"_id": safe_object_id(assessment_id, "assessment id")}
    )
    if not doc:
        raise NotFoundError("Assessment not found")
    return serialize_assessment(doc)


async def _recent(db: AsyncIOMotorDatabase, user_id: str, days: int) -> List[dict]:
    since = utcnow() - timedelta(days=days)
    cursor = get_assessments_collection(db).find({"user_id": user_id, "date": {"$gte": since}}).sort("date", 1)
    return await cursor.to_list(length=None)


async def get_trends(db: AsyncIOMotorDatabase, user_id: str, days: int = 30) -> StressTrends:
    docs = await _recent(db, user_id, days)
    if not docs:
        return StressTrends()
    levels = [d["stress_level"] for d in docs]
    return StressTrends(
        average=round(sum(levels) / len(levels), 2),
        trend=compute_trend(levels),
        highest_level=max(levels),
        lowest_level=min(levels),
        common_triggers=top_triggers(docs),
    )


async def get_patterns(db: AsyncIOMotorDatabase, user_id: str, days: int = 30) -> StressPatterns:
    return analyze_patterns(await _recent(db, user_id, days))


async def get_recommendations(db: AsyncIOMotorDatabase, user_id: str) -> StressRecommendations:
    latest = await get_assessments_collection(db).find_one({"user_id": user_id}, sort=[("date", -1)])
    category = categorize_stress_level(latest["stress_level"]) if latest else StressCategory.MODERATE
    preferences = await get_preferences(db, user_id)

    preferred = [TechniqueType(t) for t in preferences.preferred_techniques]
    items = sorted(
        _RECOMMENDATIONS[category],
        key=lambda item: preferred.index(item[0]) if item[0] in preferred else len(preferred),
    )
    return StressRecommendations(
        stress_category=category,
        techniques=[t for t, _ in items],
        suggestions=[s for _, s in items],
    )


# ---------- UPDATE ----------
async def update_assessment(
    db: AsyncIOMotorDatabase, assessment_id: str, data: StressAssessmentUpdate
) -> StressAssessmentRead:
    col = get_assessments_collection(db)
    oid = safe_object_id(assessment_id, "assessment id")

    update_doc = data.model_dump(exclude_unset=True, exclude_none=True)
    update_doc["updated_at"] = utcnow()
    result = await col.update_one({"_id": oid}, {"$set": update_doc})
    if result.matched_count == 0:
        raise NotFoundError("Assessment not found")
    return serialize_assessment(await col.find_one({"_id": oid}))


# ---------- DELETE ----------
async def delete_assessment(db: AsyncIOMotorDatabase, assessment_id: str) -> None:
    result = await get_assessments_collection(db).delete_one(
        {"_id": safe_object_id(assessment_id, "assessment id")}
    )
    if result.deleted_count == 0:
        raise NotFoundError("Assessment not found")


async def resolve_assessment_owner(db: AsyncIOMotorDatabase, assessment_id: str) -> Optional[str]:
    doc = await get_assessments_collection(db).find_one(
        {"_id": safe_object_id(assessment_id, "assessment id")}, {"user_id": 1}
    )
    return doc["user_id"] if doc else None


# ---------- PREFERENCES ----------
async def get_preferences(db: AsyncIOMotorDatabase, user_id: str) -> StressPreferencesRead:
    doc = await get_preferences_collection(db).find_one({"user_id": user_id})
    prefs = StressPreferencesInDB(**doc) if doc else StressPreferencesInDB(user_id=user_id)
    return StressPreferencesRead(**prefs.model_dump())


async def update_preferences(
    db: AsyncIOMotorDatabase, user_id: str, data: StressPreferencesUpdate
) -> StressPreferencesRead:
    update_doc = data.model_dump(exclude_unset=True, exclude_none=True, mode="json")
    update_doc["updated_at"] = utcnow()
    await get_preferences_collection(db).update_one(
        {"user_id": user_id},
        {"$set": update_doc, "$setOnInsert": {"user_id": user_id}},
        upsert=True,
    )
    return await get_preferences(db, user_id)
