# backend/mindfulness/schemas/meditation.py
from datetime import datetime
from typing import List, Optional

from pydantic import Field, field_validator

from mindfulness.models.meditation import Difficulty, MeditationCategory
from mindfulness.schemas.base import CamelModel, check_string_list, strip_and_reject_blank


class MeditationCreate(CamelModel):
    """
    [Request] POST /api/meditations (admin)
    """
    title: str = Field(min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=1000)
    category: MeditationCategory
    difficulty: Difficulty = Difficulty.BEGINNER
    duration: int = Field(ge=1, le=180)
    audio_url: Optional[str] = None
    tags: List[str] = Field(default_factory=list)

    @field_validator("tags", mode="before")
    @classmethod
    def _tags(cls, v):
        return check_string_list(v, "tags", 10, 30)


class MeditationUpdate(CamelModel):
    """
    [Request] PUT /api/meditations/{id} (admin). Only given fields change.
    """
    title: Optional[str] = Field(default=None, max_length=100)
    description: Optional[str] = Field(default=None, max_length=1000)
    category: Optional[MeditationCategory] = None
    difficulty: Optional[Difficulty] = None
    duration: Optional[int] = Field(default=None, ge=1, le=180)
    audio_url: Optional[str] = None
    tags: Optional[List[str]] = None
    is_active: Optional[bool] = None

    @field_validator("title")
    @classmethod
    def _title_not_blank(cls, v: Optional[str]) -> Optional[str]:
        return strip_and_reject_blank(v, "title")

    @field_validator("tags", mode="before")
    @classmethod
    def _tags(cls, v):
        if v is None:
            return None
        return check_string_list(v, "tags", 10, 30)


class MeditationRead(CamelModel):
    id: str
    title: str
    description: Optional[str] = None
    category: MeditationCategory
    difficulty: Difficulty
    duration: int
    audio_url: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    author_id: Optional[str] = None
    is_active: bool = True
    created_at: datetime
    updated_at: Optional[datetime] = None


class MeditationList(CamelModel):
    meditations: List[MeditationRead]
    total: int
    page: int
    total_pages: int
