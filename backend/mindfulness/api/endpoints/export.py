# backend/mindfulness/api/endpoints/export.py
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from motor.motor_asyncio import AsyncIOMotorDatabase

from mindfulness.api.deps import Principal, get_current_principal
from mindfulness.core.errors import ValidationError
from mindfulness.crud import export as export_crud
from mindfulness.crud.common import ensure_aware_utc
from mindfulness.db.mongo import get_database
from mindfulness.schemas.export import ExportFormat

router = APIRouter(prefix="/api/export", tags=["Data Export"])


def _csv_response(body: str, name: str, user_id: str) -> Response:
    return Response(
        content=body,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{name}-{user_id}.csv"'},
    )


def _check_range(start: Optional[datetime], end: Optional[datetime]) -> None:
    if start and end and ensure_aware_utc(start) > ensure_aware_utc(end):
        raise ValidationError("startDate cannot be after endDate")


@router.get("/achievements")
async def export_achievements(
    fmt: ExportFormat = Query(ExportFormat.JSON, alias="format"),
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    principal: Principal = Depends(get_current_principal),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    _check_range(start_date, end_date)
    achievements = await export_crud.get_user_achievements(db, principal.user_id, start_date, end_date)
    if fmt == ExportFormat.CSV:
        return _csv_response(export_crud.achievements_csv(achievements), "achievements", principal.user_id)
    return {"data": achievements}


@router.get("/meditations")
async def export_meditations(
    fmt: ExportFormat = Query(ExportFormat.JSON, alias="format"),
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    principal: Principal = Depends(get_current_principal),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    _check_range(start_date, end_date)
    sessions = await export_crud.get_user_meditations(db, principal.user_id, start_date, end_date)
    if fmt == ExportFormat.CSV:
        return _csv_response(export_crud.meditations_csv(sessions), "meditations", principal.user_id)
    return {"data": sessions}


@router.get("/stress-levels")
async def export_stress_levels(
    fmt: ExportFormat = Query(ExportFormat.JSON, alias="format"),
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    principal: Principal = Depends(get_current_principal),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    _check_range(start_date, end_date)
    assessments = await export_crud.get_user_stress_assessments(db, principal.user_id, start_date, end_date)
    if fmt == ExportFormat.CSV:
        return _csv_response(export_crud.stress_csv(assessments), "stress-levels", principal.user_id)
    return {"data": assessments}


@router.get("/user-data")
async def export_user_data(
    fmt: ExportFormat = Query(ExportFormat.JSON, alias="format"),
    principal: Principal = Depends(get_current_principal),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    export = await export_crud.get_user_data(db, principal.user_id)
    if fmt == ExportFormat.CSV:
        return _csv_response(export_crud.user_data_csv(export), "user-data", principal.user_id)
    return {"data": export}
