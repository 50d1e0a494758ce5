# backend/mindfulness/api/endpoints/meditations.py
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from motor.motor_asyncio import AsyncIOMotorDatabase

from mindfulness.api.deps import Principal, get_cache, require_admin
from mindfulness.core.cache import CatalogCache
from mindfulness.core.errors import NotFoundError
from mindfulness.crud import meditations as meditation_crud
from mindfulness.db.mongo import get_database
from mindfulness.models.meditation import Difficulty, MeditationCategory
from mindfulness.schemas.meditation import (
    MeditationCreate,
    MeditationList,
    MeditationRead,
    MeditationUpdate,
)

router = APIRouter(prefix="/api/meditations", tags=["Meditations"])


# READ ALL (public catalog)
@router.get("", response_model=MeditationList)
async def list_meditations(
    category: Optional[MeditationCategory] = None,
    difficulty: Optional[Difficulty] = None,
    search: Optional[str] = Query(None, max_length=100),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: AsyncIOMotorDatabase = Depends(get_database),
    cache: CatalogCache = Depends(get_cache),
):
    return await meditation_crud.list_meditations(
        db,
        cache,
        category=category.value if category else None,
        difficulty=difficulty.value if difficulty else None,
        search=search,
        page=page,
        limit=limit,
    )


# READ ONE
@router.get("/{meditation_id}", response_model=MeditationRead)
async def get_meditation(meditation_id: str, db: AsyncIOMotorDatabase = Depends(get_database)):
    meditation = await meditation_crud.get_meditation(db, meditation_id)
    if not meditation:
        raise NotFoundError("Meditation not found")
    return meditation


# CREATE (admin)
@router.post("", response_model=MeditationRead, status_code=status.HTTP_201_CREATED)
async def create_meditation(
    data: MeditationCreate,
    admin: Principal = Depends(require_admin),
    db: AsyncIOMotorDatabase = Depends(get_database),
    cache: CatalogCache = Depends(get_cache),
):
    return await meditation_crud.create_meditation(db, cache, admin.user_id, data)


# UPDATE (admin)
@router.put("/{meditation_id}", response_model=MeditationRead)
async def update_meditation(
    meditation_id: str,
    data: MeditationUpdate,
    _: Principal = Depends(require_admin),
    db: AsyncIOMotorDatabase = Depends(get_database),
    cache: CatalogCache = Depends(get_cache),
):
    return await meditation_crud.update_meditation(db, cache, meditation_id, data)


# DELETE (admin)
@router.delete("/{meditation_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_meditation(
    meditation_id: str,
    _: Principal = Depends(require_admin),
    db: AsyncIOMotorDatabase = Depends(get_database),
    cache: CatalogCache = Depends(get_cache),
):
    await meditation_crud.delete_meditation(db, cache, meditation_id)
    return None
