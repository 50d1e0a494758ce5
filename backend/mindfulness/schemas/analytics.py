# backend/mindfulness/schemas/analytics.py
from datetime import datetime
from typing import Dict, List, Optional

from pydantic import Field

from mindfulness.schemas.base import CamelModel
from mindfulness.schemas.session import MeditationSessionRead


class SessionSummary(CamelModel):
    total_sessions: int = 0
    total_minutes: int = 0
    average_focus_score: float = 0.0
    total_interruptions: int = 0


class SessionHistory(CamelModel):
    sessions: List[MeditationSessionRead]
    total_sessions: int
    total_pages: int
    page: int


class MoodProgress(CamelModel):
    total_improved: int = 0
    total_sessions: int = 0
    improvement_rate: float = 0.0


class CacheCounters(CamelModel):
    hits: int = 0
    misses: int = 0
    sets: int = 0
    invalidations: int = 0
    errors: int = 0
    hit_rate: float = 0.0
    average_latency_ms: float = 0.0


class CacheTypeStats(CamelModel):
    cache_type: str
    overall: CacheCounters
    categories: Dict[str, CacheCounters] = Field(default_factory=dict)


class CacheHitRate(CamelModel):
    cache_type: str
    hit_rate: float
    category: Optional[str] = None


class CacheStatsSnapshot(CamelModel):
    id: Optional[str] = None
    timestamp: datetime
    cache_type: str
    overall: CacheCounters
    categories: Dict[str, CacheCounters] = Field(default_factory=dict)
