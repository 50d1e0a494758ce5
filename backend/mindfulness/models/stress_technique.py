# backend/mindfulness/models/stress_technique.py
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import Field

from mindfulness.models.base import MongoModel
from mindfulness.models.meditation import Difficulty
from mindfulness.models.stress import TechniqueType


class TechniqueCategory(str, Enum):
    BREATHING = "breathing"
    MEDITATION = "meditation"
    PHYSICAL = "physical"
    COGNITIVE = "cognitive"
    MINDFULNESS = "mindfulness"


# stress preferences name technique types, the catalog files techniques by category
PREFERENCE_CATEGORIES = {
    TechniqueType.BREATHING: TechniqueCategory.BREATHING,
    TechniqueType.MEDITATION: TechniqueCategory.MEDITATION,
    TechniqueType.PHYSICAL_EXERCISE: TechniqueCategory.PHYSICAL,
    TechniqueType.PROGRESSIVE_MUSCLE_RELAXATION: TechniqueCategory.PHYSICAL,
    TechniqueType.MINDFULNESS: TechniqueCategory.MINDFULNESS,
    TechniqueType.JOURNALING: TechniqueCategory.COGNITIVE,
}

DEFAULT_CATEGORIES = [TechniqueCategory.BREATHING, TechniqueCategory.MEDITATION]


class StressTechniqueInDB(MongoModel):
    """Stress management technique (`stress_techniques` collection)."""
    name: str
    description: str
    category: TechniqueCategory
    difficulty_level: Difficulty = Difficulty.BEGINNER
    duration_minutes: int
    steps: List[str] = Field(default_factory=list)
    benefits: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    effectiveness_rating: Optional[float] = None
    recommended_frequency: Optional[str] = None

    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: Optional[datetime] = None
