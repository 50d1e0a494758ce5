# backend/mindfulness/schemas/stress_technique.py
from datetime import datetime
from typing import List, Optional

from pydantic import Field, field_validator

from mindfulness.models.meditation import Difficulty
from mindfulness.models.stress_technique import TechniqueCategory
from mindfulness.schemas.base import CamelModel, check_string_list, strip_and_reject_blank


def _check_items(v, field_name: str, min_len: int, max_len: int) -> List[str]:
    items = check_string_list(v, field_name, 20, max_len)
    if any(len(s) < min_len for s in items):
        raise ValueError(f"Each item in {field_name} should have at least {min_len} characters")
    return items


class StressTechniqueCreate(CamelModel):
    """
    [Request] POST /api/stress-techniques (admin)
    """
    name: str = Field(min_length=3, max_length=100)
    description: str = Field(min_length=20, max_length=1000)
    category: TechniqueCategory
    difficulty_level: Difficulty
    duration_minutes: int = Field(ge=1, le=120)
    steps: List[str] = Field(default_factory=list)
    benefits: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    effectiveness_rating: Optional[float] = Field(default=None, ge=1, le=5)
    recommended_frequency: Optional[str] = Field(default=None, max_length=100)

    @field_validator("steps", mode="before")
    @classmethod
    def _steps(cls, v):
        return _check_items(v, "steps", 5, 200)

    @field_validator("benefits", mode="before")
    @classmethod
    def _benefits(cls, v):
        return _check_items(v, "benefits", 3, 100)

    @field_validator("tags", mode="before")
    @classmethod
    def _tags(cls, v):
        return _check_items(v, "tags", 2, 30)


class StressTechniqueUpdate(CamelModel):
    """
    [Request] PUT /api/stress-techniques/{id} (admin). Only given fields change.
    """
    name: Optional[str] = Field(default=None, min_length=3, max_length=100)
    description: Optional[str] = Field(default=None, min_length=20, max_length=1000)
    category: Optional[TechniqueCategory] = None
    difficulty_level: Optional[Difficulty] = None
    duration_minutes: Optional[int] = Field(default=None, ge=1, le=120)
    steps: Optional[List[str]] = None
    benefits: Optional[List[str]] = None
    tags: Optional[List[str]] = None
    effectiveness_rating: Optional[float] = Field(default=None, ge=1, le=5)
    recommended_frequency: Optional[str] = Field(default=None, max_length=100)

    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, v: Optional[str]) -> Optional[str]:
        return strip_and_reject_blank(v, "name")

    @field_validator("steps", mode="before")
    @classmethod
    def _steps(cls, v):
        return None if v is None else _check_items(v, "steps", 5, 200)

    @field_validator("benefits", mode="before")
    @classmethod
    def _benefits(cls, v):
        return None if v is None else _check_items(v, "benefits", 3, 100)

    @field_validator("tags", mode="before")
    @classmethod
    def _tags(cls, v):
        return None if v is None else _check_items(v, "tags", 2, 30)


class StressTechniqueRead(CamelModel):
    id: str
    name: str
    description: str
    category: TechniqueCategory
    difficulty_level: Difficulty
    duration_minutes: int
    steps: List[str] = Field(default_factory=list)
    benefits: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    effectiveness_rating: Optional[float] = None
    recommended_frequency: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None


class StressTechniqueList(CamelModel):
    techniques: List[StressTechniqueRead]
    total: int
    page: int
    total_pages: int
