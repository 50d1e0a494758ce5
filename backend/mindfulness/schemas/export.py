# backend/mindfulness/schemas/export.py
from enum import Enum
from typing import List

from pydantic import Field

from mindfulness.schemas.achievement import AchievementRead
from mindfulness.schemas.base import CamelModel
from mindfulness.schemas.session import MeditationSessionRead
from mindfulness.schemas.stress import StressAssessmentRead
from mindfulness.schemas.user import UserRead


class ExportFormat(str, Enum):
    JSON = "json"
    CSV = "csv"


class UserDataExport(CamelModel):
    """
    [Response] GET /api/export/user-data
    """
    profile: UserRead
    achievements: List[AchievementRead] = Field(default_factory=list)
    meditations: List[MeditationSessionRead] = Field(default_factory=list)
    stress_assessments: List[StressAssessmentRead] = Field(default_factory=list)
