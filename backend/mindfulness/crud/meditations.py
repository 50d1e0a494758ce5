# backend/mindfulness/crud/meditations.py
import math
import re
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from mindfulness.core.cache import CatalogCache
from mindfulness.core.errors import NotFoundError
from mindfulness.crud.common import is_object_id, safe_object_id, utcnow
from mindfulness.models.meditation import MeditationInDB
from mindfulness.schemas.meditation import (
    MeditationCreate,
    MeditationList,
    MeditationRead,
    MeditationUpdate,
)

CACHE_TYPE = "meditations"


def get_meditations_collection(db: AsyncIOMotorDatabase):
    return db["meditations"]


def serialize_meditation(doc) -> MeditationRead:
    m = MeditationInDB(**doc)
    return MeditationRead(**m.model_dump())


# ---------- READ ----------
async def list_meditations(
    db: AsyncIOMotorDatabase,
    cache: CatalogCache,
    category: Optional[str] = None,
    difficulty: Optional[str] = None,
    search: Optional[str] = None,
    page: int = 1,
    limit: int = 10,
) -> MeditationList:
    query: dict = {"is_active": True}
    if category:
        query["category"] = category
    if difficulty:
        query["difficulty"] = difficulty
    if search:
        pattern = {"$regex": re.escape(search.strip()), "$options": "i"}
        query["$or"] = [{"title": pattern}, {"description": pattern}, {"tags": pattern}]

    async def load() -> MeditationList:
        col = get_meditations_collection(db)
        total = await col.count_documents(query)
        cursor = col.find(query).sort("created_at", -1).skip((page - 1) * limit).limit(limit)
        docs = await cursor.to_list(length=limit)
        return MeditationList(
            meditations=[serialize_meditation(d) for d in docs],
            total=total,
            page=page,
            total_pages=math.ceil(total / limit) if limit else 0,
        )

    key = f"{category}|{difficulty}|{search}|{page}|{limit}"
    return await cache.get_or_load(CACHE_TYPE, key, load, category="list")


async def get_meditation(db: AsyncIOMotorDatabase, meditation_id: str) -> Optional[MeditationRead]:
    doc = await get_meditations_collection(db).find_one({"_id": safe_object_id(meditation_id, "meditation id")})
    return serialize_meditation(doc) if doc else None


async def meditation_exists(db: AsyncIOMotorDatabase, meditation_id: str) -> bool:
    if not is_object_id(meditation_id):
        return False
    doc = await get_meditations_collection(db).find_one({"_id": safe_object_id(meditation_id)}, {"_id": 1})
    return doc is not None


# ---------- CREATE ----------
async def create_meditation(
    db: AsyncIOMotorDatabase, cache: CatalogCache, author_id: str, data: MeditationCreate
) -> MeditationRead:
    m = MeditationInDB(author_id=author_id, **data.model_dump())
    col = get_meditations_collection(db)
    result = await col.insert_one(m.to_document())
    cache.invalidate(CACHE_TYPE)
    created = await col.find_one({"_id": result.inserted_id})
    return serialize_meditation(created)


# ---------- UPDATE ----------
async def update_meditation(
    db: AsyncIOMotorDatabase, cache: CatalogCache, meditation_id: str, data: MeditationUpdate
) -> MeditationRead:
    col = get_meditations_collection(db)
    oid = safe_object_id(meditation_id, "meditation id")

    update_doc = data.model_dump(exclude_unset=True, exclude_none=True)
    update_doc["updated_at"] = utcnow()
    result = await col.update_one({"_id": oid}, {"$set": update_doc})
    if result.matched_count == 0:
        raise NotFoundError("Meditation not found")

    cache.invalidate(CACHE_TYPE)
    return serialize_meditation(await col.find_one({"_id": oid}))


# ---------- DELETE ----------
async def delete_meditation(db: AsyncIOMotorDatabase, cache: CatalogCache, meditation_id: str) -> None:
    result = await get_meditations_collection(db).delete_one(
        {"_id": safe_object_id(meditation_id, "meditation id")}
    )
    if result.deleted_count == 0:
        raise NotFoundError("Meditation not found")
    cache.invalidate(CACHE_TYPE)
