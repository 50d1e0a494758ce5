# backend/mindfulness/db/mongo.py
from typing import Optional

import structlog
from fastapi import Request
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING

from mindfulness.core.config import Settings

logger = structlog.get_logger(__name__)


class MongoDatabase:
    """
    Owns the single Motor client of the process.
    Created in create_app(), connected in the lifespan startup, closed on shutdown.
    """

    def __init__(self, settings: Settings):
        self.settings = settings
        self.client: Optional[AsyncIOMotorClient] = None
        self._db: Optional[AsyncIOMotorDatabase] = None

    @property
    def db(self) -> AsyncIOMotorDatabase:
        if self._db is None:
            raise RuntimeError("MongoDB is not connected")
        return self._db

    async def connect(self) -> None:
        self.client = AsyncIOMotorClient(
            self.settings.MONGO_URI,
            maxPoolSize=10,
            serverSelectionTimeoutMS=5000,
            socketTimeoutMS=45000,
            tz_aware=True,
        )
        self._db = self.client[self.settings.MONGO_DB_NAME]
        logger.info("MongoDB connected", database=self.settings.MONGO_DB_NAME)

    async def close(self) -> None:
        if self.client:
            self.client.close()
            logger.info("MongoDB connection closed")
        self.client = None
        self._db = None

    async def ping(self) -> None:
        await self.db.command("ping")

    async def ensure_indexes(self) -> None:
        db = self.db
        await db["users"].create_index("email", unique=True)
        await db["users"].create_index("username", unique=True)
        await db["meditations"].create_index([("category", ASCENDING), ("difficulty", ASCENDING)])
        await db["meditation_sessions"].create_index([("user_id", ASCENDING), ("start_time", DESCENDING)])
        await db["breathing_sessions"].create_index([("user_id", ASCENDING), ("start_time", DESCENDING)])
        await db["pmr_sessions"].create_index([("user_id", ASCENDING), ("start_time", DESCENDING)])
        await db["stress_assessments"].create_index([("user_id", ASCENDING), ("date", DESCENDING)])
        await db["stress_preferences"].create_index("user_id", unique=True)
        await db["achievements"].create_index([("user_id", ASCENDING), ("type", ASCENDING)], unique=True)
        await db["chat_messages"].create_index([("session_id", ASCENDING), ("created_at", DESCENDING)])
        await db["friend_requests"].create_index([("recipient_id", ASCENDING), ("status", ASCENDING)])
        await db["breathing_patterns"].create_index("name", unique=True)
        await db["muscle_groups"].create_index("name", unique=True)
        await db["group_sessions"].create_index([("status", ASCENDING), ("scheduled_time", ASCENDING)])
        await db["cache_stats"].create_index([("cache_type", ASCENDING), ("timestamp", DESCENDING)])
        await db["stress_techniques"].create_index([("category", ASCENDING), ("difficulty_level", ASCENDING)])
        await db["stress_techniques"].create_index("name")


def get_database(request: Request) -> AsyncIOMotorDatabase:
    """FastAPI dependency: the connected database handle of this app."""
    return request.app.state.mongo.db
