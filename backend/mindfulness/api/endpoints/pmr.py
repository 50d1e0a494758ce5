# backend/mindfulness/api/endpoints/pmr.py
from typing import List

from fastapi import APIRouter, Depends, Query, status
from motor.motor_asyncio import AsyncIOMotorDatabase

from mindfulness.api.deps import Principal, get_cache, get_current_principal, require_owner_or_admin
from mindfulness.core.cache import CatalogCache
from mindfulness.crud import pmr as pmr_crud
from mindfulness.db.mongo import get_database
from mindfulness.schemas.session import (
    MuscleGroupRead,
    PMREffectiveness,
    PMRProgressUpdate,
    PMRSessionComplete,
    PMRSessionCreate,
    PMRSessionRead,
)

router = APIRouter(prefix="/api/pmr", tags=["PMR"])

session_owner = require_owner_or_admin(pmr_crud.resolve_pmr_session_owner, "session_id")


@router.get("/muscle-groups", response_model=List[MuscleGroupRead])
async def list_muscle_groups(
    _: Principal = Depends(get_current_principal),
    db: AsyncIOMotorDatabase = Depends(get_database),
    cache: CatalogCache = Depends(get_cache),
):
    return await pmr_crud.list_muscle_groups(db, cache)


@router.post("/sessions", response_model=PMRSessionRead, status_code=status.HTTP_201_CREATED)
async def start_session(
    data: PMRSessionCreate,
    principal: Principal = Depends(get_current_principal),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    return await pmr_crud.start_session(db, principal.user_id, data)


@router.put("/sessions/{session_id}/progress", response_model=PMRSessionRead)
async def record_progress(
    session_id: str,
    data: PMRProgressUpdate,
    _: Principal = Depends(session_owner),
    db: AsyncIOMotorDatabase = Depends(get_database),
    cache: CatalogCache = Depends(get_cache),
):
    return await pmr_crud.record_progress(db, cache, session_id, data)


@router.put("/sessions/{session_id}/complete", response_model=PMRSessionRead)
async def complete_session(
    session_id: str,
    data: PMRSessionComplete,
    _: Principal = Depends(session_owner),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    return await pmr_crud.complete_session(db, session_id, data)


@router.get("/sessions", response_model=List[PMRSessionRead])
async def list_sessions(
    limit: int = Query(50, ge=1, le=200),
    principal: Principal = Depends(get_current_principal),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    return await pmr_crud.list_sessions(db, principal.user_id, limit)


@router.get("/effectiveness", response_model=PMREffectiveness)
async def get_effectiveness(
    principal: Principal = Depends(get_current_principal),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    return await pmr_crud.get_effectiveness(db, principal.user_id)
