# backend/mindfulness/models/meditation.py
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import Field

from mindfulness.models.base import MongoModel


class MeditationCategory(str, Enum):
    MINDFULNESS = "mindfulness"
    BREATHING = "breathing"
    BODY_SCAN = "body_scan"
    GUIDED = "guided"
    UNGUIDED = "unguided"
    LOVING_KINDNESS = "loving_kindness"
    SLEEP = "sleep"


class Difficulty(str, Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


class MeditationInDB(MongoModel):
    """Meditation content metadata (`meditations` collection)."""
    title: str
    description: Optional[str] = None
    category: MeditationCategory
    difficulty: Difficulty = Difficulty.BEGINNER
    duration: int  # minutes
    audio_url: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    author_id: Optional[str] = None
    is_active: bool = True

    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: Optional[datetime] = None
