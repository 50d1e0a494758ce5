# backend/mindfulness/api/endpoints/stress_management.py
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from motor.motor_asyncio import AsyncIOMotorDatabase

from mindfulness.api.deps import Principal, get_current_principal, require_owner_or_admin
from mindfulness.crud import stress as stress_crud
from mindfulness.db.mongo import get_database
from mindfulness.schemas.stress import (
    StressAssessmentCreate,
    StressAssessmentRead,
    StressAssessmentUpdate,
    StressPatterns,
    StressPreferencesRead,
    StressPreferencesUpdate,
    StressRecommendations,
    StressTrends,
)

router = APIRouter(prefix="/api/stress-management", tags=["Stress Management"])

assessment_owner = require_owner_or_admin(stress_crud.resolve_assessment_owner, "assessment_id")


# ---------- ASSESSMENTS ----------
@router.post("/assessments", response_model=StressAssessmentRead, status_code=status.HTTP_201_CREATED)
async def create_assessment(
    data: StressAssessmentCreate,
    principal: Principal = Depends(get_current_principal),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    """
    [Request] POST /api/stress-management/assessments
    stressLevel 1..10; the response carries the derived stressCategory.
    """
    return await stress_crud.create_assessment(db, principal.user_id, data)


@router.get("/assessments", response_model=List[StressAssessmentRead])
async def list_assessments(
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    limit: int = Query(50, ge=1, le=200),
    principal: Principal = Depends(get_current_principal),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    return await stress_crud.list_assessments(db, principal.user_id, start_date, end_date, limit)


@router.get("/assessments/{assessment_id}", response_model=StressAssessmentRead)
async def get_assessment(
    assessment_id: str,
    _: Principal = Depends(assessment_owner),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    return await stress_crud.get_assessment(db, assessment_id)


@router.put("/assessments/{assessment_id}", response_model=StressAssessmentRead)
async def update_assessment(
    assessment_id: str,
    data: StressAssessmentUpdate,
    _: Principal = Depends(assessment_owner),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    return await stress_crud.update_assessment(db, assessment_id, data)


@router.delete("/assessments/{assessment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_assessment(
    assessment_id: str,
    _: Principal = Depends(assessment_owner),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    await stress_crud.delete_assessment(db, assessment_id)
    return None


# ---------- ANALYSIS ----------
@router.get("/trends", response_model=StressTrends)
async def get_trends(
    days: int = Query(30, ge=1, le=365),
    principal: Principal = Depends(get_current_principal),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    return await stress_crud.get_trends(db, principal.user_id, days)


@router.get("/patterns", response_model=StressPatterns)
async def get_patterns(
    days: int = Query(30, ge=1, le=365),
    principal: Principal = Depends(get_current_principal),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    return await stress_crud.get_patterns(db, principal.user_id, days)


@router.get("/recommendations", response_model=StressRecommendations)
async def get_recommendations(
    principal: Principal = Depends(get_current_principal),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    return await stress_crud.get_recommendations(db, principal.user_id)


# ---------- PREFERENCES ----------
@router.get("/preferences", response_model=StressPreferencesRead)
async def get_preferences(
    principal: Principal = Depends(get_current_principal),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    return await stress_crud.get_preferences(db, principal.user_id)


@router.put("/preferences", response_model=StressPreferencesRead)
async def update_preferences(
    data: StressPreferencesUpdate,
    principal: Principal = Depends(get_current_principal),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    return await stress_crud.update_preferences(db, principal.user_id, data)
