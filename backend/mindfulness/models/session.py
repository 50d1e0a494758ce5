# backend/mindfulness/models/session.py
from datetime import datetime
from enum import Enum
from typing import Dict, FrozenSet, List, Optional

from pydantic import Field

from mindfulness.models.base import MongoModel


class SessionStatus(str, Enum):
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


# allowed next statuses; COMPLETED and CANCELLED are terminal
SESSION_TRANSITIONS: Dict[SessionStatus, FrozenSet[SessionStatus]] = {
    SessionStatus.PENDING: frozenset({SessionStatus.IN_PROGRESS, SessionStatus.CANCELLED}),
    SessionStatus.IN_PROGRESS: frozenset({SessionStatus.COMPLETED, SessionStatus.CANCELLED}),
    SessionStatus.COMPLETED: frozenset(),
    SessionStatus.CANCELLED: frozenset(),
}


def can_transition(current: SessionStatus, target: SessionStatus) -> bool:
    return SessionStatus(target) in SESSION_TRANSITIONS[SessionStatus(current)]


class MoodState(str, Enum):
    STRESSED = "stressed"
    ANXIOUS = "anxious"
    NEUTRAL = "neutral"
    CALM = "calm"
    PEACEFUL = "peaceful"
    ENERGIZED = "energized"


MOOD_ORDER: List[MoodState] = [
    MoodState.STRESSED,
    MoodState.ANXIOUS,
    MoodState.NEUTRAL,
    MoodState.CALM,
    MoodState.PEACEFUL,
    MoodState.ENERGIZED,
]


def mood_improved(before: Optional[str], after: Optional[str]) -> bool:
    """True when `after` ranks strictly above `before` on MOOD_ORDER."""
    if not before or not after:
        return False
    try:
        return MOOD_ORDER.index(MoodState(after)) > MOOD_ORDER.index(MoodState(before))
    except ValueError:
        return False


class MeditationType(str, Enum):
    GUIDED = "guided"
    UNGUIDED = "unguided"
    BREATHING = "breathing"
    BODY_SCAN = "body_scan"
    MINDFULNESS = "mindfulness"


class BaseSessionInDB(MongoModel):
    """Fields shared by every tracked session kind."""
    user_id: str
    start_time: datetime
    end_time: Optional[datetime] = None
    duration: Optional[int] = None  # seconds
    status: SessionStatus = SessionStatus.PENDING
    mood_before: Optional[MoodState] = None
    mood_after: Optional[MoodState] = None
    notes: Optional[str] = None


class MeditationSessionInDB(BaseSessionInDB):
    meditation_id: Optional[str] = None
    type: MeditationType = MeditationType.GUIDED
    duration_completed: int = 0  # minutes
    interruptions: int = 0
    focus_score: Optional[int] = None
    tags: List[str] = Field(default_factory=list)


class BreathingSessionInDB(BaseSessionInDB):
    pattern_name: str
    target_cycles: int
    completed_cycles: int = 0
    stress_level_before: Optional[int] = None
    stress_level_after: Optional[int] = None


class PMRSessionInDB(BaseSessionInDB):
    completed_groups: List[str] = Field(default_factory=list)
    stress_level_before: Optional[int] = None
    stress_level_after: Optional[int] = None


class BreathingPattern(MongoModel):
    name: str
    inhale: int
    hold: Optional[int] = None
    exhale: int
    post_exhale_hold: Optional[int] = None
    cycles: int


class MuscleGroup(MongoModel):
    name: str
    order: int
    duration: int  # seconds
    description: str


DEFAULT_BREATHING_PATTERNS: List[BreathingPattern] = [
    BreathingPattern(name="4-7-8", inhale=4, hold=7, exhale=8, cycles=4),
    BreathingPattern(name="BOX_BREATHING", inhale=4, hold=4, exhale=4, post_exhale_hold=4, cycles=4),
    BreathingPattern(name="QUICK_BREATH", inhale=2, exhale=4, cycles=6),
]

DEFAULT_MUSCLE_GROUPS: List[MuscleGroup] = [
    MuscleGroup(name="hands_and_forearms", order=1, duration=30,
                description="Make a tight fist and feel the tension in your hands and forearms"),
    MuscleGroup(name="biceps", order=2, duration=30,
                description="Bend your elbows and tense your biceps"),
    MuscleGroup(name="shoulders", order=3, duration=30,
                description="Raise your shoulders up toward your ears"),
    MuscleGroup(name="face", order=4, duration=30,
                description="Scrunch your facial muscles, squeezing your eyes shut"),
    MuscleGroup(name="chest_and_back", order=5, duration=30,
                description="Take a deep breath and pull your shoulder blades together"),
    MuscleGroup(name="abdomen", order=6, duration=30,
                description="Tighten your stomach muscles"),
    MuscleGroup(name="legs", order=7, duration=45,
                description="Point your toes and tense your thighs and calves"),
]
