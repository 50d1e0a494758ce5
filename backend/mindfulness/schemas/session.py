# backend/mindfulness/schemas/session.py
"""Meditation, breathing and PMR session schemas."""
from datetime import datetime
from typing import Annotated, List, Optional

from pydantic import Field, field_validator

from mindfulness.models.session import MeditationType, MoodState, SessionStatus
from mindfulness.schemas.base import CamelModel, check_string_list

StressLevel = Annotated[int, Field(ge=1, le=10, strict=True)]


# --- Meditation sessions ---

class MeditationSessionCreate(CamelModel):
    """
    [Request] POST /api/meditation-sessions
    """
    meditation_id: Optional[str] = None
    type: MeditationType = MeditationType.GUIDED
    start_time: Optional[datetime] = None
    mood_before: Optional[MoodState] = None
    tags: List[str] = Field(default_factory=list)

    @field_validator("tags", mode="before")
    @classmethod
    def _tags(cls, v):
        return check_string_list(v, "tags", 10, 30)


class MeditationSessionComplete(CamelModel):
    """
    [Request] POST /api/meditation-sessions/{id}/complete
    """
    end_time: Optional[datetime] = None
    mood_after: Optional[MoodState] = None
    notes: Optional[str] = Field(default=None, max_length=1000)


class StatusUpdate(CamelModel):
    """
    [Request] PATCH /api/meditation-sessions/{id}/status
    """
    status: SessionStatus


class MeditationSessionRead(CamelModel):
    id: str
    user_id: str
    meditation_id: Optional[str] = None
    type: MeditationType
    start_time: datetime
    end_time: Optional[datetime] = None
    duration: Optional[int] = None
    duration_completed: int = 0
    status: SessionStatus
    interruptions: int = 0
    focus_score: Optional[int] = None
    mood_before: Optional[MoodState] = None
    mood_after: Optional[MoodState] = None
    notes: Optional[str] = None
    tags: List[str] = Field(default_factory=list)


class MeditationStats(CamelModel):
    total_sessions: int = 0
    total_minutes: int = 0
    average_duration: float = 0.0
    current_streak: int = 0
    completion_rate: float = 0.0
    most_common_type: Optional[str] = None
    mood_improvement_rate: float = 0.0


# --- Breathing ---

class BreathingPatternRead(CamelModel):
    name: str
    inhale: int
    hold: Optional[int] = None
    exhale: int
    post_exhale_hold: Optional[int] = None
    cycles: int


class BreathingSessionCreate(CamelModel):
    """
    [Request] POST /api/breathing/sessions
    """
    pattern_name: str = Field(min_length=1)
    target_cycles: Optional[int] = Field(default=None, ge=1, le=100)
    stress_level_before: Optional[StressLevel] = None
    mood_before: Optional[MoodState] = None


class BreathingSessionComplete(CamelModel):
    """
    [Request] PUT /api/breathing/sessions/{id}/complete
    """
    completed_cycles: int = Field(ge=0, le=100)
    stress_level_after: Optional[StressLevel] = None
    mood_after: Optional[MoodState] = None
    notes: Optional[str] = Field(default=None, max_length=1000)


class BreathingSessionRead(CamelModel):
    id: str
    user_id: str
    pattern_name: str
    target_cycles: int
    completed_cycles: int = 0
    start_time: datetime
    end_time: Optional[datetime] = None
    duration: Optional[int] = None
    status: SessionStatus
    stress_level_before: Optional[int] = None
    stress_level_after: Optional[int] = None
    mood_before: Optional[MoodState] = None
    mood_after: Optional[MoodState] = None
    notes: Optional[str] = None


class BreathingEffectiveness(CamelModel):
    average_stress_reduction: float = 0.0
    total_sessions: int = 0
    most_effective_pattern: Optional[str] = None


# --- PMR ---

class MuscleGroupRead(CamelModel):
    name: str
    order: int
    duration: int
    description: str


class PMRSessionCreate(CamelModel):
    """
    [Request] POST /api/pmr/sessions
    """
    stress_level_before: Optional[StressLevel] = None
    mood_before: Optional[MoodState] = None


class PMRProgressUpdate(CamelModel):
    """
    [Request] PUT /api/pmr/sessions/{id}/progress
    """
    completed_group: str = Field(min_length=1)


class PMRSessionComplete(CamelModel):
    """
    [Request] PUT /api/pmr/sessions/{id}/complete
    """
    stress_level_after: Optional[StressLevel] = None
    mood_after: Optional[MoodState] = None
    notes: Optional[str] = Field(default=None, max_length=1000)


class PMRSessionRead(CamelModel):
    id: str
    user_id: str
    completed_groups: List[str] = Field(default_factory=list)
    start_time: datetime
    end_time: Optional[datetime] = None
    duration: Optional[int] = None
    status: SessionStatus
    stress_level_before: Optional[int] = None
    stress_level_after: Optional[int] = None
    mood_before: Optional[MoodState] = None
    mood_after: Optional[MoodState] = None
    notes: Optional[str] = None


class PMREffectiveness(CamelModel):
    average_stress_reduction: float = 0.0
    total_sessions: int = 0
    average_completion_rate: float = 0.0
