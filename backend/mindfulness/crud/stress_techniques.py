# backend/mindfulness/crud/stress_techniques.py
import math
import re
from typing import List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from mindfulness.core.cache import CatalogCache
from mindfulness.core.errors import NotFoundError, ValidationError
from mindfulness.crud import stress as stress_crud
from mindfulness.crud.common import safe_object_id, utcnow
from mindfulness.models.meditation import Difficulty
from mindfulness.models.stress import TechniqueType
from mindfulness.models.stress_technique import (
    DEFAULT_CATEGORIES,
    PREFERENCE_CATEGORIES,
    StressTechniqueInDB,
)
from mindfulness.schemas.stress_technique import (
    StressTechniqueCreate,
    StressTechniqueList,
    StressTechniqueRead,
    StressTechniqueUpdate,
)

CACHE_TYPE = "stress_techniques"
FALLBACK_LIMIT = 3


def get_techniques_collection(db: AsyncIOMotorDatabase):
    return db["stress_techniques"]


def serialize_technique(doc) -> StressTechniqueRead:
    t = StressTechniqueInDB(**doc)
    return StressTechniqueRead(**t.model_dump())


async def _find(db: AsyncIOMotorDatabase, query: dict, limit: int = 100) -> List[StressTechniqueRead]:
    cursor = get_techniques_collection(db).find(query).sort("name", 1).limit(limit)
    docs = await cursor.to_list(length=limit)
    return [serialize_technique(d) for d in docs]


# ---------- READ ----------
async def list_techniques(
    db: AsyncIOMotorDatabase, cache: CatalogCache, page: int = 1, limit: int = 20
) -> StressTechniqueList:
    async def load() -> StressTechniqueList:
        col = get_techniques_collection(db)
        total = await col.count_documents({})
        cursor = col.find({}).sort("name", 1).skip((page - 1) * limit).limit(limit)
        docs = await cursor.to_list(length=limit)
        return StressTechniqueList(
            techniques=[serialize_technique(d) for d in docs],
            total=total,
            page=page,
            total_pages=math.ceil(total / limit) if limit else 0,
        )

    return await cache.get_or_load(CACHE_TYPE, f"{page}|{limit}", load, category="list")


async def get_technique(db: AsyncIOMotorDatabase, technique_id: str) -> StressTechniqueRead:
    doc = await get_techniques_collection(db).find_one({"_id": safe_object_id(technique_id, "technique id")})
    if doc is None:
        raise NotFoundError("Stress management technique not found")
    return serialize_technique(doc)


async def list_by_category(db: AsyncIOMotorDatabase, cache: CatalogCache, category: str) -> List[StressTechniqueRead]:
    return await cache.get_or_load(
        CACHE_TYPE, f"category|{category}", lambda: _find(db, {"category": category}), category="category"
    )


async def list_by_difficulty(db: AsyncIOMotorDatabase, difficulty: str) -> List[StressTechniqueRead]:
    return await _find(db, {"difficulty_level": difficulty})


async def search_techniques(db: AsyncIOMotorDatabase, q: Optional[str]) -> List[StressTechniqueRead]:
    """
    Case-insensitive match on name, description and tags.
    """
    text = (q or "").strip()
    if not text:
        raise ValidationError("Search query is required")
    pattern = {"$regex": re.escape(text), "$options": "i"}
    return await _find(db, {"$or": [{"name": pattern}, {"description": pattern}, {"tags": pattern}]})


async def list_by_duration(db: AsyncIOMotorDatabase, min_minutes: int, max_minutes: int) -> List[StressTechniqueRead]:
    if min_minutes > max_minutes:
        raise ValidationError("minDuration cannot exceed maxDuration")
    return await _find(db, {"duration_minutes": {"$gte": min_minutes, "$lte": max_minutes}})


async def get_recommendations(db: AsyncIOMotorDatabase, user_id: str) -> List[StressTechniqueRead]:
    """
    Techniques in the categories the user's stress preferences point at, no
    longer than the preferred duration. Falls back to a few beginner techniques.
    """
    preferences = await stress_crud.get_preferences(db, user_id)

    categories = []
    for technique in preferences.preferred_techniques:
        category = PREFERENCE_CATEGORIES[TechniqueType(technique)].value
        if category not in categories:
            categories.append(category)
    if not categories:
        categories = [c.value for c in DEFAULT_CATEGORIES]

    query = {
        "category": {"$in": categories},
        "duration_minutes": {"$lte": preferences.preferred_duration},
    }
    cursor = get_techniques_collection(db).find(query).sort("effectiveness_rating", -1).limit(10)
    docs = await cursor.to_list(length=10)
    if docs:
        return [serialize_technique(d) for d in docs]

    return await _find(db, {"difficulty_level": Difficulty.BEGINNER.value}, limit=FALLBACK_LIMIT)


# ---------- CREATE ----------
async def create_technique(
    db: AsyncIOMotorDatabase, cache: CatalogCache, data: StressTechniqueCreate
) -> StressTechniqueRead:
    t = StressTechniqueInDB(**data.model_dump())
    col = get_techniques_collection(db)
    result = await col.insert_one(t.to_document())
    cache.invalidate(CACHE_TYPE)
    return serialize_technique(await col.find_one({"_id": result.inserted_id}))


# ---------- UPDATE ----------
async def update_technique(
    db: AsyncIOMotorDatabase, cache: CatalogCache, technique_id: str, data: StressTechniqueUpdate
) -> StressTechniqueRead:
    col = get_techniques_collection(db)
    oid = safe_object_id(technique_id, "technique id")

    update_doc = data.model_dump(exclude_unset=True, exclude_none=True, mode="json")
    update_doc["updated_at"] = utcnow()
    result = await col.update_one({"_id": oid}, {"$set": update_doc})
    if result.matched_count == 0:
        raise NotFoundError("Stress management technique not found")

    cache.invalidate(CACHE_TYPE)
    return serialize_technique(await col.find_one({"_id": oid}))


# ---------- DELETE ----------
async def delete_technique(db: AsyncIOMotorDatabase, cache: CatalogCache, technique_id: str) -> None:
    result = await get_techniques_collection(db).delete_one(
        {"_id": safe_object_id(technique_id, "technique id")}
    )
    if result.deleted_count == 0:
        raise NotFoundError("Stress management technique not found")
    cache.invalidate(CACHE_TYPE)
