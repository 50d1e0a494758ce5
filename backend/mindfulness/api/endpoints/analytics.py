# backend/mindfulness/api/endpoints/analytics.py
from fastapi import APIRouter, Depends, Query
from motor.motor_asyncio import AsyncIOMotorDatabase

from mindfulness.api.deps import Principal, get_current_principal
from mindfulness.crud import analytics as analytics_crud
from mindfulness.db.mongo import get_database
from mindfulness.schemas.analytics import MoodProgress, SessionHistory, SessionSummary

router = APIRouter(prefix="/api/analytics", tags=["Analytics"])


@router.get("/sessions/summary", response_model=SessionSummary)
async def get_summary(
    principal: Principal = Depends(get_current_principal),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    return await analytics_crud.get_session_summary(db, principal.user_id)


@router.get("/sessions/history", response_model=SessionHistory)
async def get_history(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    principal: Principal = Depends(get_current_principal),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    return await analytics_crud.get_session_history(db, principal.user_id, page, limit)


@router.get("/sessions/mood", response_model=MoodProgress)
async def get_mood_progress(
    days: int = Query(30, ge=1, le=365),
    principal: Principal = Depends(get_current_principal),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    return await analytics_crud.get_mood_progress(db, principal.user_id, days)
