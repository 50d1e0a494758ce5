# backend/mindfulness/api/endpoints/users.py
import math

from fastapi import APIRouter, Depends, Query, status
from motor.motor_asyncio import AsyncIOMotorDatabase

from mindfulness.api.deps import (
    Principal,
    get_current_principal,
    require_admin,
    require_owner_or_admin,
)
from mindfulness.core.errors import NotFoundError
from mindfulness.crud import achievements as achievement_crud
from mindfulness.crud import meditation_sessions as session_crud
from mindfulness.crud import users as user_crud
from mindfulness.db.mongo import get_database
from mindfulness.schemas.base import MessageResponse
from mindfulness.schemas.user import (
    PasswordChange,
    ProfileUpdate,
    UserList,
    UserRead,
    UserStats,
)

router = APIRouter(prefix="/api/users", tags=["Users"])

user_owner = require_owner_or_admin(user_crud.resolve_user_owner, "user_id")


# ---------- ME ----------
@router.get("/profile", response_model=UserRead)
async def get_profile(
    principal: Principal = Depends(get_current_principal),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    return user_crud.serialize_user(await user_crud.require_user(db, principal.user_id))


@router.put("/profile", response_model=UserRead)
async def update_profile(
    data: ProfileUpdate,
    principal: Principal = Depends(get_current_principal),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    return user_crud.serialize_user(await user_crud.update_profile(db, principal.user_id, data))


@router.put("/password", response_model=MessageResponse)
async def change_password(
    data: PasswordChange,
    principal: Principal = Depends(get_current_principal),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    await user_crud.change_password(db, principal.user_id, data)
    return MessageResponse(message="Password updated")


@router.get("/stats", response_model=UserStats)
async def get_stats(
    principal: Principal = Depends(get_current_principal),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    stats = await session_crud.get_stats(db, principal.user_id)
    points = await achievement_crud.get_points(db, principal.user_id)
    return UserStats(
        total_sessions=stats.total_sessions,
        total_minutes=stats.total_minutes,
        current_streak=stats.current_streak,
        achievement_points=points.total_points,
        completed_achievements=points.completed_count,
    )


# ---------- ADMIN ----------
@router.get("", response_model=UserList)
async def list_users(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    _: Principal = Depends(require_admin),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    users, total = await user_crud.list_users(db, page, limit)
    return UserList(
        users=[user_crud.serialize_user(u) for u in users],
        total=total,
        page=page,
        total_pages=math.ceil(total / limit),
    )


@router.get("/{user_id}", response_model=UserRead)
async def get_user(
    user_id: str,
    _: Principal = Depends(user_owner),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    user = await user_crud.get_user_by_id(db, user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user_crud.serialize_user(user)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(
    user_id: str,
    _: Principal = Depends(user_owner),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    if not await user_crud.delete_user(db, user_id):
        raise NotFoundError("User not found")
    return None
