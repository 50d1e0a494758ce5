# backend/mindfulness/models/stress.py
from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import Field

from mindfulness.models.base import MongoModel

MIN_STRESS_LEVEL = 1
MAX_STRESS_LEVEL = 10


class StressCategory(str, Enum):
    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"


def categorize_stress_level(level: int) -> StressCategory:
    """
    1-3 low, 4-7 moderate, 8-10 high.
    The numeric level is what gets stored; the category is always derived.
    """
    if level < MIN_STRESS_LEVEL or level > MAX_STRESS_LEVEL:
        raise ValueError(f"Stress level must be between {MIN_STRESS_LEVEL} and {MAX_STRESS_LEVEL}")
    if level <= 3:
        return StressCategory.LOW
    if level <= 7:
        return StressCategory.MODERATE
    return StressCategory.HIGH


class StressTrend(str, Enum):
    IMPROVING = "IMPROVING"
    WORSENING = "WORSENING"
    STABLE = "STABLE"


class TechniqueType(str, Enum):
    BREATHING = "BREATHING"
    MEDITATION = "MEDITATION"
    PHYSICAL_EXERCISE = "PHYSICAL_EXERCISE"
    PROGRESSIVE_MUSCLE_RELAXATION = "PROGRESSIVE_MUSCLE_RELAXATION"
    MINDFULNESS = "MINDFULNESS"
    JOURNALING = "JOURNALING"


class ReminderFrequency(str, Enum):
    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    ON_HIGH_STRESS = "ON_HIGH_STRESS"


class StressAssessmentInDB(MongoModel):
    user_id: str
    date: datetime
    stress_level: int
    physical_symptoms: List[str] = Field(default_factory=list)
    emotional_symptoms: List[str] = Field(default_factory=list)
    triggers: List[str] = Field(default_factory=list)
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class StressPreferencesInDB(MongoModel):
    user_id: str
    preferred_techniques: List[TechniqueType] = Field(default_factory=list)
    preferred_duration: int = 10  # minutes
    reminder_frequency: ReminderFrequency = ReminderFrequency.DAILY
    updated_at: Optional[datetime] = None
