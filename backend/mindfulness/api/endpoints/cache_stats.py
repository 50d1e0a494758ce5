# backend/mindfulness/api/endpoints/cache_stats.py
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from motor.motor_asyncio import AsyncIOMotorDatabase

from mindfulness.api.deps import Principal, get_cache, get_current_principal, require_admin
from mindfulness.core.cache import CatalogCache
from mindfulness.crud import analytics as analytics_crud
from mindfulness.db.mongo import get_database
from mindfulness.schemas.analytics import CacheHitRate, CacheStatsSnapshot, CacheTypeStats
from mindfulness.schemas.base import MessageResponse

router = APIRouter(prefix="/api/cache-stats", tags=["Cache Stats"])


@router.get("", response_model=List[CacheTypeStats])
async def get_current_stats(
    _: Principal = Depends(get_current_principal),
    cache: CatalogCache = Depends(get_cache),
):
    return analytics_crud.current_cache_stats(cache)


@router.get("/history", response_model=List[CacheStatsSnapshot])
async def get_history(
    cache_type: Optional[str] = Query(None, alias="cacheType"),
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    _: Principal = Depends(get_current_principal),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    return await analytics_crud.get_cache_history(db, cache_type, start_date, end_date)


@router.get("/{cache_type}/hit-rate", response_model=CacheHitRate)
async def get_hit_rate(
    cache_type: str,
    category: Optional[str] = None,
    _: Principal = Depends(get_current_principal),
    cache: CatalogCache = Depends(get_cache),
):
    return CacheHitRate(cache_type=cache_type, category=category, hit_rate=cache.hit_rate(cache_type, category))


@router.post("/snapshot", response_model=MessageResponse)
async def save_snapshot(
    _: Principal = Depends(require_admin),
    db: AsyncIOMotorDatabase = Depends(get_database),
    cache: CatalogCache = Depends(get_cache),
):
    count = await analytics_crud.save_cache_snapshot(db, cache)
    return MessageResponse(message=f"Saved {count} snapshot(s)")


@router.post("/reset", response_model=MessageResponse)
async def reset_stats(
    _: Principal = Depends(require_admin),
    cache: CatalogCache = Depends(get_cache),
):
    cache.reset()
    return MessageResponse(message="Cache statistics reset")
