# backend/mindfulness/api/endpoints/group_sessions.py
from typing import List

from fastapi import APIRouter, Depends, status
from motor.motor_asyncio import AsyncIOMotorDatabase

from mindfulness.api.deps import Principal, get_current_principal
from mindfulness.crud import achievements as achievement_crud
from mindfulness.crud import chat as chat_crud
from mindfulness.crud import group_sessions as group_crud
from mindfulness.db.mongo import get_database
from mindfulness.models.social import ParticipantStatus
from mindfulness.schemas.social import GroupSessionCreate, GroupSessionRead

router = APIRouter(prefix="/api/group-sessions", tags=["Group Sessions"])


# CREATE
@router.post("", response_model=GroupSessionRead, status_code=status.HTTP_201_CREATED)
async def create_group_session(
    data: GroupSessionCreate,
    principal: Principal = Depends(get_current_principal),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    return await group_crud.create_group_session(db, principal.user_id, data)


# READ
@router.get("", response_model=List[GroupSessionRead])
async def list_upcoming(
    principal: Principal = Depends(get_current_principal),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    return await group_crud.list_upcoming(db, principal.user_id)


@router.get("/user", response_model=List[GroupSessionRead])
async def list_my_sessions(
    principal: Principal = Depends(get_current_principal),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    return await group_crud.list_user_sessions(db, principal.user_id)


@router.get("/{session_id}", response_model=GroupSessionRead)
async def get_group_session(
    session_id: str,
    _: Principal = Depends(get_current_principal),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    return await group_crud.get_group_session(db, session_id)


# PARTICIPATION
@router.post("/{session_id}/join", response_model=GroupSessionRead)
async def join_group_session(
    session_id: str,
    principal: Principal = Depends(get_current_principal),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    return await group_crud.join_group_session(db, session_id, principal.user_id)


@router.post("/{session_id}/leave", response_model=GroupSessionRead)
async def leave_group_session(
    session_id: str,
    principal: Principal = Depends(get_current_principal),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    session = await group_crud.leave_group_session(db, session_id, principal.user_id)
    await chat_crud.add_system_message(db, session_id, f"{principal.username} left the session")
    return session


@router.post("/{session_id}/complete", response_model=GroupSessionRead)
async def complete_participation(
    session_id: str,
    principal: Principal = Depends(get_current_principal),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    session = await group_crud.complete_participation(db, session_id, principal.user_id)
    participants = sum(1 for p in session.participants if p.status != ParticipantStatus.LEFT)
    await achievement_crud.process_group_session(db, principal.user_id, participants)
    return session


# HOST ACTIONS
@router.post("/{session_id}/start", response_model=GroupSessionRead)
async def start_group_session(
    session_id: str,
    principal: Principal = Depends(get_current_principal),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    return await group_crud.start_group_session(db, session_id, principal.user_id)


@router.post("/{session_id}/end", response_model=GroupSessionRead)
async def end_group_session(
    session_id: str,
    principal: Principal = Depends(get_current_principal),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    session = await group_crud.end_group_session(db, session_id, principal.user_id)
    await chat_crud.add_system_message(db, session_id, "Session has ended")
    return session


@router.post("/{session_id}/cancel", response_model=GroupSessionRead)
async def cancel_group_session(
    session_id: str,
    principal: Principal = Depends(get_current_principal),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    session = await group_crud.cancel_group_session(db, session_id, principal.user_id)
    await chat_crud.add_system_message(db, session_id, "Session has been cancelled")
    return session
