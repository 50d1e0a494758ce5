# backend/mindfulness/schemas/achievement.py
from datetime import datetime
from typing import List, Optional

from mindfulness.models.achievement import AchievementType
from mindfulness.schemas.base import CamelModel


class AchievementRead(CamelModel):
    id: str
    user_id: str
    type: AchievementType
    title: str
    description: str
    points: int
    target: int
    progress: int = 0
    completed: bool = False
    completed_at: Optional[datetime] = None


class AchievementPoints(CamelModel):
    total_points: int = 0
    completed_count: int = 0


class LeaderboardEntry(CamelModel):
    user_id: str
    username: Optional[str] = None
    total_points: int
    completed_count: int


class Leaderboard(CamelModel):
    entries: List[LeaderboardEntry]
