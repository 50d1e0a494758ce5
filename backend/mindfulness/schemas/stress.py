# backend/mindfulness/schemas/stress.py
from datetime import datetime
from typing import Dict, List, Optional

from pydantic import Field, StrictInt, field_validator

from mindfulness.models.stress import (
    ReminderFrequency,
    StressCategory,
    StressTrend,
    TechniqueType,
    categorize_stress_level,
)
from mindfulness.schemas.base import CamelModel, check_string_list


def _check_stress_level(v: Optional[int]) -> Optional[int]:
    if v is None:
        return v
    categorize_stress_level(v)  # raises ValueError outside 1..10
    return v


class StressAssessmentCreate(CamelModel):
    """
    [Request] POST /api/stress-management/assessments
    """
    stress_level: StrictInt
    date: Optional[datetime] = None
    physical_symptoms: List[str] = Field(default_factory=list)
    emotional_symptoms: List[str] = Field(default_factory=list)
    triggers: List[str] = Field(default_factory=list)
    notes: Optional[str] = Field(default=None, max_length=1000)

    @field_validator("stress_level")
    @classmethod
    def _level(cls, v):
        return _check_stress_level(v)

    @field_validator("physical_symptoms", mode="before")
    @classmethod
    def _physical(cls, v):
        return check_string_list(v, "physicalSymptoms", 10, 50)

    @field_validator("emotional_symptoms", mode="before")
    @classmethod
    def _emotional(cls, v):
        return check_string_list(v, "emotionalSymptoms", 10, 50)

    @field_validator("triggers", mode="before")
    @classmethod
    def _triggers(cls, v):
        return check_string_list(v, "triggers", 5, 100)


class StressAssessmentUpdate(CamelModel):
    """
    [Request] PUT /api/stress-management/assessments/{id}
    """
    stress_level: Optional[StrictInt] = None
    physical_symptoms: Optional[List[str]] = None
    emotional_symptoms: Optional[List[str]] = None
    triggers: Optional[List[str]] = None
    notes: Optional[str] = Field(default=None, max_length=1000)

    @field_validator("stress_level")
    @classmethod
    def _level(cls, v):
        return _check_stress_level(v)

    @field_validator("physical_symptoms", mode="before")
    @classmethod
    def _physical(cls, v):
        return None if v is None else check_string_list(v, "physicalSymptoms", 10, 50)

    @field_validator("emotional_symptoms", mode="before")
    @classmethod
    def _emotional(cls, v):
        return None if v is None else check_string_list(v, "emotionalSymptoms", 10, 50)

    @field_validator("triggers", mode="before")
    @classmethod
    def _triggers(cls, v):
        return None if v is None else check_string_list(v, "triggers", 5, 100)


class StressAssessmentRead(CamelModel):
    id: str
    user_id: str
    date: datetime
    stress_level: int
    stress_category: StressCategory
    physical_symptoms: List[str] = Field(default_factory=list)
    emotional_symptoms: List[str] = Field(default_factory=list)
    triggers: List[str] = Field(default_factory=list)
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class StressTrends(CamelModel):
    average: float = 0.0
    trend: StressTrend = StressTrend.STABLE
    highest_level: int = 0
    lowest_level: int = 0
    common_triggers: List[str] = Field(default_factory=list)


class StressPatterns(CamelModel):
    weekday_averages: Dict[str, float] = Field(default_factory=dict)
    time_of_day_averages: Dict[str, float] = Field(default_factory=dict)
    peak_stress_hours: List[str] = Field(default_factory=list)
    top_triggers: List[str] = Field(default_factory=list)


class StressRecommendations(CamelModel):
    stress_category: StressCategory
    techniques: List[TechniqueType]
    suggestions: List[str]


class StressPreferencesUpdate(CamelModel):
    """
    [Request] PUT /api/stress-management/preferences
    """
    preferred_techniques: Optional[List[TechniqueType]] = None
    preferred_duration: Optional[int] = Field(default=None, ge=1, le=60)
    reminder_frequency: Optional[ReminderFrequency] = None


class StressPreferencesRead(CamelModel):
    user_id: str
    preferred_techniques: List[TechniqueType] = Field(default_factory=list)
    preferred_duration: int = 10
    reminder_frequency: ReminderFrequency = ReminderFrequency.DAILY
    updated_at: Optional[datetime] = None
