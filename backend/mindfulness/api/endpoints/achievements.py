# backend/mindfulness/api/endpoints/achievements.py
from typing import List

from fastapi import APIRouter, Depends, Query
from motor.motor_asyncio import AsyncIOMotorDatabase

from mindfulness.api.deps import Principal, get_current_principal, require_owner_or_admin
from mindfulness.core.errors import NotFoundError
from mindfulness.crud import achievements as achievement_crud
from mindfulness.db.mongo import get_database
from mindfulness.schemas.achievement import AchievementPoints, AchievementRead, Leaderboard

router = APIRouter(prefix="/api/achievements", tags=["Achievements"])

achievement_owner = require_owner_or_admin(achievement_crud.resolve_achievement_owner, "achievement_id")


@router.get("", response_model=List[AchievementRead])
async def list_achievements(
    principal: Principal = Depends(get_current_principal),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    return await achievement_crud.list_achievements(db, principal.user_id)


@router.get("/completed", response_model=List[AchievementRead])
async def list_completed(
    principal: Principal = Depends(get_current_principal),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    return await achievement_crud.list_achievements(db, principal.user_id, completed=True)


@router.get("/points", response_model=AchievementPoints)
async def get_points(
    principal: Principal = Depends(get_current_principal),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    return await achievement_crud.get_points(db, principal.user_id)


@router.get("/leaderboard", response_model=Leaderboard)
async def get_leaderboard(
    limit: int = Query(10, ge=1, le=100),
    _: Principal = Depends(get_current_principal),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    return await achievement_crud.get_leaderboard(db, limit)


@router.get("/{achievement_id}", response_model=AchievementRead)
async def get_achievement(
    achievement_id: str,
    _: Principal = Depends(achievement_owner),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    achievement = await achievement_crud.get_achievement(db, achievement_id)
    if achievement is None:
        raise NotFoundError("Achievement not found")
    return achievement
