# backend/mindfulness/api/endpoints/meditation_sessions.py
from typing import List, Optional

import structlog
from fastapi import APIRouter, Depends, Query, status
from motor.motor_asyncio import AsyncIOMotorDatabase

from mindfulness.api.deps import Principal, get_current_principal, require_owner_or_admin
from mindfulness.crud import achievements as achievement_crud
from mindfulness.crud import meditation_sessions as session_crud
from mindfulness.db.mongo import get_database
from mindfulness.models.session import SessionStatus
from mindfulness.schemas.session import (
    MeditationSessionComplete,
    MeditationSessionCreate,
    MeditationSessionRead,
    MeditationStats,
    StatusUpdate,
)

router = APIRouter(prefix="/api/meditation-sessions", tags=["Meditation Sessions"])
logger = structlog.get_logger(__name__)

session_owner = require_owner_or_admin(session_crud.resolve_meditation_session_owner, "session_id")


# CREATE (START)
@router.post("", response_model=MeditationSessionRead, status_code=status.HTTP_201_CREATED)
async def start_session(
    data: MeditationSessionCreate,
    principal: Principal = Depends(get_current_principal),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    """
    [Request] POST /api/meditation-sessions
    409 when the user already has a session in progress.
    """
    return await session_crud.start_session(db, principal.user_id, data)


# READ ALL (mine)
@router.get("", response_model=List[MeditationSessionRead])
async def list_sessions(
    status_filter: Optional[SessionStatus] = Query(None, alias="status"),
    limit: int = Query(50, ge=1, le=200),
    principal: Principal = Depends(get_current_principal),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    return await session_crud.list_sessions(db, principal.user_id, status_filter, limit)


@router.get("/active", response_model=Optional[MeditationSessionRead])
async def get_active_session(
    principal: Principal = Depends(get_current_principal),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    return await session_crud.get_active_session(db, principal.user_id)


@router.get("/stats", response_model=MeditationStats)
async def get_stats(
    principal: Principal = Depends(get_current_principal),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    return await session_crud.get_stats(db, principal.user_id)


# READ ONE
@router.get("/{session_id}", response_model=MeditationSessionRead)
async def get_session(
    session_id: str,
    _: Principal = Depends(session_owner),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    return await session_crud.get_session(db, session_id)


@router.post("/{session_id}/interrupt", response_model=MeditationSessionRead)
async def record_interruption(
    session_id: str,
    _: Principal = Depends(session_owner),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    return await session_crud.record_interruption(db, session_id)


@router.post("/{session_id}/complete", response_model=MeditationSessionRead)
async def complete_session(
    session_id: str,
    data: MeditationSessionComplete,
    _: Principal = Depends(session_owner),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    session = await session_crud.complete_session(db, session_id, data)
    streak = await session_crud.get_current_streak(db, session.user_id)
    await achievement_crud.process_meditation_session(db, session, streak)
    logger.info("Meditation session completed", session_id=session.id, user_id=session.user_id)
    return session


@router.patch("/{session_id}/status", response_model=MeditationSessionRead)
async def update_status(
    session_id: str,
    data: StatusUpdate,
    _: Principal = Depends(session_owner),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    return await session_crud.update_status(db, session_id, data.status)


# DELETE
@router.delete("/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_session(
    session_id: str,
    _: Principal = Depends(session_owner),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    await session_crud.delete_session(db, session_id)
    return None
