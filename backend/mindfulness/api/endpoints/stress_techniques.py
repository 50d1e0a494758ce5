# backend/mindfulness/api/endpoints/stress_techniques.py
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from motor.motor_asyncio import AsyncIOMotorDatabase

from mindfulness.api.deps import Principal, get_cache, get_current_principal, require_admin
from mindfulness.core.cache import CatalogCache
from mindfulness.crud import stress_techniques as technique_crud
from mindfulness.db.mongo import get_database
from mindfulness.models.meditation import Difficulty
from mindfulness.models.stress_technique import TechniqueCategory
from mindfulness.schemas.base import MessageResponse
from mindfulness.schemas.stress_technique import (
    StressTechniqueCreate,
    StressTechniqueList,
    StressTechniqueRead,
    StressTechniqueUpdate,
)

router = APIRouter(prefix="/api/stress-techniques", tags=["Stress Techniques"])


# READ ALL (public catalog)
@router.get("", response_model=StressTechniqueList)
async def list_techniques(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: AsyncIOMotorDatabase = Depends(get_database),
    cache: CatalogCache = Depends(get_cache),
):
    return await technique_crud.list_techniques(db, cache, page=page, limit=limit)


# fixed paths before /{technique_id}
@router.get("/search", response_model=List[StressTechniqueRead])
async def search_techniques(
    q: Optional[str] = Query(None, max_length=100),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    return await technique_crud.search_techniques(db, q)


@router.get("/duration", response_model=List[StressTechniqueRead])
async def techniques_by_duration(
    min_duration: int = Query(1, alias="minDuration", ge=1),
    max_duration: int = Query(120, alias="maxDuration", le=120),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    return await technique_crud.list_by_duration(db, min_duration, max_duration)


@router.get("/recommendations", response_model=List[StressTechniqueRead])
async def recommended_techniques(
    principal: Principal = Depends(get_current_principal),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    return await technique_crud.get_recommendations(db, principal.user_id)


@router.get("/category/{category}", response_model=List[StressTechniqueRead])
async def techniques_by_category(
    category: TechniqueCategory,
    db: AsyncIOMotorDatabase = Depends(get_database),
    cache: CatalogCache = Depends(get_cache),
):
    return await technique_crud.list_by_category(db, cache, category.value)


@router.get("/difficulty/{level}", response_model=List[StressTechniqueRead])
async def techniques_by_difficulty(level: Difficulty, db: AsyncIOMotorDatabase = Depends(get_database)):
    return await technique_crud.list_by_difficulty(db, level.value)


# READ ONE
@router.get("/{technique_id}", response_model=StressTechniqueRead)
async def get_technique(technique_id: str, db: AsyncIOMotorDatabase = Depends(get_database)):
    return await technique_crud.get_technique(db, technique_id)


# CREATE (admin)
@router.post("", response_model=StressTechniqueRead, status_code=status.HTTP_201_CREATED)
async def create_technique(
    data: StressTechniqueCreate,
    _: Principal = Depends(require_admin),
    db: AsyncIOMotorDatabase = Depends(get_database),
    cache: CatalogCache = Depends(get_cache),
):
    return await technique_crud.create_technique(db, cache, data)


# UPDATE (admin)
@router.put("/{technique_id}", response_model=StressTechniqueRead)
async def update_technique(
    technique_id: str,
    data: StressTechniqueUpdate,
    _: Principal = Depends(require_admin),
    db: AsyncIOMotorDatabase = Depends(get_database),
    cache: CatalogCache = Depends(get_cache),
):
    return await technique_crud.update_technique(db, cache, technique_id, data)


# DELETE (admin)
@router.delete("/{technique_id}", response_model=MessageResponse)
async def delete_technique(
    technique_id: str,
    _: Principal = Depends(require_admin),
    db: AsyncIOMotorDatabase = Depends(get_database),
    cache: CatalogCache = Depends(get_cache),
):
    await technique_crud.delete_technique(db, cache, technique_id)
    return MessageResponse(message="Stress management technique deleted successfully")
