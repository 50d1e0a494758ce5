# backend/mindfulness/models/user.py
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import EmailStr, Field

from mindfulness.models.base import MongoModel, ObjectIdStr


def _now() -> datetime:
    return datetime.now(timezone.utc)


class UserInDB(MongoModel):
    """
    Full user document stored in the `users` collection.
    password_hash never leaves the crud layer.
    """
    username: str
    email: EmailStr
    password_hash: str

    is_admin: bool = False

    display_name: Optional[str] = None
    bio: Optional[str] = None
    preferences: Dict[str, Any] = Field(default_factory=dict)

    # friendships are stored on both users
    friend_ids: List[ObjectIdStr] = Field(default_factory=list)
    blocked_user_ids: List[ObjectIdStr] = Field(default_factory=list)

    created_at: datetime = Field(default_factory=_now)
    last_login_at: Optional[datetime] = None
