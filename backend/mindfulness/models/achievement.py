# backend/mindfulness/models/achievement.py
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Dict, Optional

from mindfulness.models.base import MongoModel


class AchievementType(str, Enum):
    EARLY_BIRD = "early_bird"
    NIGHT_OWL = "night_owl"
    MARATHON_MEDITATOR = "marathon_meditator"
    WEEK_WARRIOR = "week_warrior"
    ZEN_MASTER = "zen_master"
    MOOD_LIFTER = "mood_lifter"
    SOCIAL_BUTTERFLY = "social_butterfly"


@dataclass(frozen=True)
class AchievementDefinition:
    type: AchievementType
    title: str
    description: str
    points: int
    target: int


ACHIEVEMENT_CATALOG: Dict[AchievementType, AchievementDefinition] = {
    d.type: d
    for d in (
        AchievementDefinition(AchievementType.EARLY_BIRD, "Early Bird",
                              "Complete 5 sessions started before 8 AM", 50, 5),
        AchievementDefinition(AchievementType.NIGHT_OWL, "Night Owl",
                              "Complete 5 sessions started after 10 PM", 50, 5),
        AchievementDefinition(AchievementType.MARATHON_MEDITATOR, "Marathon Meditator",
                              "Complete a single session of 30 minutes or more", 100, 1),
        AchievementDefinition(AchievementType.WEEK_WARRIOR, "Week Warrior",
                              "Meditate 7 days in a row", 150, 7),
        AchievementDefinition(AchievementType.ZEN_MASTER, "Zen Master",
                              "Meditate 30 days in a row", 500, 30),
        AchievementDefinition(AchievementType.MOOD_LIFTER, "Mood Lifter",
                              "Improve your mood in 10 sessions", 200, 10),
        AchievementDefinition(AchievementType.SOCIAL_BUTTERFLY, "Social Butterfly",
                              "Complete 3 group sessions with at least 3 participants", 100, 3),
    )
}


class AchievementInDB(MongoModel):
    user_id: str
    type: AchievementType
    title: str
    description: str
    points: int
    target: int
    progress: int = 0
    completed: bool = False
    completed_at: Optional[datetime] = None
