# backend/mindfulness/schemas/social.py
"""Group sessions, chat and friends."""
from datetime import datetime
from typing import List, Optional

from pydantic import Field, field_validator

from mindfulness.models.social import (
    FriendRequestStatus,
    GroupSessionStatus,
    MessageType,
    ParticipantStatus,
)
from mindfulness.schemas.base import CamelModel, strip_and_reject_blank


# --- Group sessions ---

class GroupSessionCreate(CamelModel):
    """
    [Request] POST /api/group-sessions
    scheduled_time must lie in the future (checked in crud against the clock).
    """
    title: str = Field(min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=1000)
    meditation_id: Optional[str] = None
    scheduled_time: datetime
    duration: int = Field(ge=1, le=180)
    max_participants: int = Field(default=10, ge=2, le=100)
    is_private: bool = False
    allowed_participants: List[str] = Field(default_factory=list)


class ParticipantRead(CamelModel):
    user_id: str
    status: ParticipantStatus
    joined_at: datetime


class GroupSessionRead(CamelModel):
    id: str
    host_id: str
    meditation_id: Optional[str] = None
    title: str
    description: Optional[str] = None
    scheduled_time: datetime
    duration: int
    max_participants: int
    is_private: bool = False
    participants: List[ParticipantRead] = Field(default_factory=list)
    status: GroupSessionStatus
    end_time: Optional[datetime] = None
    created_at: datetime


# --- Chat ---

class ChatMessageCreate(CamelModel):
    """
    [Request] POST /api/chat/sessions/{id}/messages
    """
    content: str = Field(max_length=1000)

    @field_validator("content")
    @classmethod
    def _content_not_blank(cls, v: str) -> str:
        return strip_and_reject_blank(v, "content")


class ChatMessageRead(CamelModel):
    id: str
    session_id: str
    sender_id: str
    content: str
    type: MessageType
    created_at: datetime


class ChatParticipant(CamelModel):
    user_id: str
    username: Optional[str] = None
    is_host: bool = False


# --- Friends ---

class FriendRequestCreate(CamelModel):
    """
    [Request] POST /api/friends/requests
    """
    recipient_id: str = Field(min_length=1)


class FriendRequestRead(CamelModel):
    id: str
    requester_id: str
    recipient_id: str
    status: FriendRequestStatus
    created_at: datetime
    updated_at: Optional[datetime] = None


class FriendRead(CamelModel):
    id: str
    username: str
    display_name: Optional[str] = None
