# backend/mindfulness/api/endpoints/breathing.py
from typing import List

from fastapi import APIRouter, Depends, Query, status
from motor.motor_asyncio import AsyncIOMotorDatabase

from mindfulness.api.deps import Principal, get_cache, get_current_principal, require_owner_or_admin
from mindfulness.core.cache import CatalogCache
from mindfulness.crud import breathing as breathing_crud
from mindfulness.db.mongo import get_database
from mindfulness.schemas.session import (
    BreathingEffectiveness,
    BreathingPatternRead,
    BreathingSessionComplete,
    BreathingSessionCreate,
    BreathingSessionRead,
)

router = APIRouter(prefix="/api/breathing", tags=["Breathing"])

session_owner = require_owner_or_admin(breathing_crud.resolve_breathing_session_owner, "session_id")


@router.get("/patterns", response_model=List[BreathingPatternRead])
async def list_patterns(
    _: Principal = Depends(get_current_principal),
    db: AsyncIOMotorDatabase = Depends(get_database),
    cache: CatalogCache = Depends(get_cache),
):
    return await breathing_crud.list_patterns(db, cache)


@router.get("/patterns/{name}", response_model=BreathingPatternRead)
async def get_pattern(
    name: str,
    _: Principal = Depends(get_current_principal),
    db: AsyncIOMotorDatabase = Depends(get_database),
    cache: CatalogCache = Depends(get_cache),
):
    return await breathing_crud.get_pattern(db, cache, name)


@router.post("/sessions", response_model=BreathingSessionRead, status_code=status.HTTP_201_CREATED)
async def start_session(
    data: BreathingSessionCreate,
    principal: Principal = Depends(get_current_principal),
    db: AsyncIOMotorDatabase = Depends(get_database),
    cache: CatalogCache = Depends(get_cache),
):
    return await breathing_crud.start_session(db, cache, principal.user_id, data)


@router.put("/sessions/{session_id}/complete", response_model=BreathingSessionRead)
async def complete_session(
    session_id: str,
    data: BreathingSessionComplete,
    _: Principal = Depends(session_owner),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    return await breathing_crud.complete_session(db, session_id, data)


@router.get("/sessions", response_model=List[BreathingSessionRead])
async def list_sessions(
    limit: int = Query(50, ge=1, le=200),
    principal: Principal = Depends(get_current_principal),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    return await breathing_crud.list_sessions(db, principal.user_id, limit)


@router.get("/effectiveness", response_model=BreathingEffectiveness)
async def get_effectiveness(
    principal: Principal = Depends(get_current_principal),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    return await breathing_crud.get_effectiveness(db, principal.user_id)
