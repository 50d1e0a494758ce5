# backend/mindfulness/crud/common.py
"""Small helpers shared by every crud module."""
from datetime import datetime, timezone
from typing import Any, Optional, Union

from bson import ObjectId
from bson.errors import InvalidId

from mindfulness.core.errors import ValidationError


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_aware_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """
    Naive datetimes coming back from Mongo or clients are treated as UTC.
    """
    if dt is None:
        return dt
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def is_object_id(value: Any) -> bool:
    return isinstance(value, ObjectId) or (isinstance(value, str) and ObjectId.is_valid(value.strip()))


def safe_object_id(value: Union[str, ObjectId, None], name: str = "id") -> ObjectId:
    """
    str/ObjectId -> ObjectId, 400 on anything that is not a 24-hex id.
    """
    if isinstance(value, ObjectId):
        return value
    if isinstance(value, str):
        value = value.strip()
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        raise ValidationError(f"Invalid {name}")
