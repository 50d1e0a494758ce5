# backend/mindfulness/crud/export.py
"""
Per-user data export as model lists (JSON) or CSV text.
"""
import csv
import io
from datetime import datetime
from typing import Iterable, List, Optional, Sequence

import structlog
from motor.motor_asyncio import AsyncIOMotorDatabase

from mindfulness.crud import users as user_crud
from mindfulness.crud.achievements import get_achievements_collection, serialize_achievement
from mindfulness.crud.common import ensure_aware_utc
from mindfulness.crud.meditation_sessions import (
    get_meditation_sessions_collection,
    serialize_meditation_session,
)
from mindfulness.crud.stress import get_assessments_collection, serialize_assessment
from mindfulness.schemas.achievement import AchievementRead
from mindfulness.schemas.export import UserDataExport
from mindfulness.schemas.session import MeditationSessionRead
from mindfulness.schemas.stress import StressAssessmentRead

logger = structlog.get_logger(__name__)

MISSING = "N/A"
MAX_EXPORT_ROWS = 10000

ACHIEVEMENT_HEADER = ["Achievement Name", "Description", "Category", "Points", "Date Earned"]
MEDITATION_HEADER = ["Date", "Duration (minutes)", "Technique", "Notes", "Mood Before", "Mood After"]
STRESS_HEADER = [
    "Date",
    "Stress Level (1-10)",
    "Stress Factors",
    "Physical Symptoms",
    "Emotional State",
    "Notes",
]


def _date_range(field: str, start: Optional[datetime], end: Optional[datetime]) -> dict:
    if not start and not end:
        return {}
    bounds = {}
    if start:
        bounds["$gte"] = ensure_aware_utc(start)
    if end:
        bounds["$lte"] = ensure_aware_utc(end)
    return {field: bounds}


def _day(value: Optional[datetime]) -> str:
    return value.date().isoformat() if value else MISSING


def _value(value) -> str:
    if value is None or value == "":
        return MISSING
    return getattr(value, "value", value)


def _joined(items: Iterable[str]) -> str:
    return ", ".join(items)


def to_csv(header: Sequence[str], rows: Iterable[Sequence]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(header)
    writer.writerows(rows)
    return buffer.getvalue()


# ---------- achievements ----------
async def get_user_achievements(
    db: AsyncIOMotorDatabase,
    user_id: str,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
) -> List[AchievementRead]:
    """Date filters apply to the completion date."""
    query = {"user_id": user_id, **_date_range("completed_at", start, end)}
    cursor = get_achievements_collection(db).find(query).sort("completed_at", -1)
    docs = await cursor.to_list(length=MAX_EXPORT_ROWS)
    return [serialize_achievement(d) for d in docs]


def achievements_csv(achievements: List[AchievementRead]) -> str:
    return to_csv(
        ACHIEVEMENT_HEADER,
        (
            [a.title, a.description, _value(a.type), a.points, _day(a.completed_at)]
            for a in achievements
        ),
    )


# ---------- meditation sessions ----------
async def get_user_meditations(
    db: AsyncIOMotorDatabase,
    user_id: str,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
) -> List[MeditationSessionRead]:
    query = {"user_id": user_id, **_date_range("start_time", start, end)}
    cursor = get_meditation_sessions_collection(db).find(query).sort("start_time", -1)
    docs = await cursor.to_list(length=MAX_EXPORT_ROWS)
    return [serialize_meditation_session(d) for d in docs]


def meditations_csv(sessions: List[MeditationSessionRead]) -> str:
    return to_csv(
        MEDITATION_HEADER,
        (
            [
                _day(s.start_time),
                s.duration_completed,
                _value(s.type),
                _value(s.notes),
                _value(s.mood_before),
                _value(s.mood_after),
            ]
            for s in sessions
        ),
    )


# ---------- stress assessments ----------
async def get_user_stress_assessments(
    db: AsyncIOMotorDatabase,
    user_id: str,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
) -> List[StressAssessmentRead]:
    query = {"user_id": user_id, **_date_range("date", start, end)}
    cursor = get_assessments_collection(db).find(query).sort("date", -1)
    docs = await cursor.to_list(length=MAX_EXPORT_ROWS)
    return [serialize_assessment(d) for d in docs]


def stress_csv(assessments: List[StressAssessmentRead]) -> str:
    return to_csv(
        STRESS_HEADER,
        (
            [
                _day(a.date),
                a.stress_level,
                _joined(a.triggers),
                _joined(a.physical_symptoms),
                _joined(a.emotional_symptoms),
                _value(a.notes),
            ]
            for a in assessments
        ),
    )


# ---------- everything ----------
async def get_user_data(db: AsyncIOMotorDatabase, user_id: str) -> UserDataExport:
    user = await user_crud.require_user(db, user_id)
    export = UserDataExport(
        profile=user_crud.serialize_user(user),
        achievements=await get_user_achievements(db, user_id),
        meditations=await get_user_meditations(db, user_id),
        stress_assessments=await get_user_stress_assessments(db, user_id),
    )
    logger.info(
        "User data exported",
        user_id=user_id,
        achievements=len(export.achievements),
        meditations=len(export.meditations),
        stress_assessments=len(export.stress_assessments),
    )
    return export


def user_data_csv(export: UserDataExport) -> str:
    """One text file, one section per dataset."""
    profile = export.profile
    sections = [
        "# USER PROFILE",
        f"Username: {profile.username}",
        f"Email: {profile.email}",
        f"Last Login: {_day(profile.last_login_at)}",
        "",
        "# ACHIEVEMENTS",
        achievements_csv(export.achievements),
        "# MEDITATION SESSIONS",
        meditations_csv(export.meditations),
        "# STRESS ASSESSMENTS",
        stress_csv(export.stress_assessments),
    ]
    return "\n".join(sections)
