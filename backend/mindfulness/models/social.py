# backend/mindfulness/models/social.py
"""Group sessions, their chat messages and friend requests."""
from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from mindfulness.models.base import MongoModel


class GroupSessionStatus(str, Enum):
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class ParticipantStatus(str, Enum):
    JOINED = "joined"
    LEFT = "left"
    COMPLETED = "completed"


class Participant(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    user_id: str
    status: ParticipantStatus = ParticipantStatus.JOINED
    joined_at: datetime


class GroupSessionInDB(MongoModel):
    host_id: str
    meditation_id: Optional[str] = None
    title: str
    description: Optional[str] = None
    scheduled_time: datetime
    duration: int  # minutes
    max_participants: int = 10
    is_private: bool = False
    allowed_participants: List[str] = Field(default_factory=list)
    participants: List[Participant] = Field(default_factory=list)
    status: GroupSessionStatus = GroupSessionStatus.SCHEDULED
    end_time: Optional[datetime] = None
    created_at: datetime

    def joined_user_ids(self) -> List[str]:
        return [p.user_id for p in self.participants if p.status == ParticipantStatus.JOINED]

    def active_participant_count(self) -> int:
        return sum(1 for p in self.participants if p.status != ParticipantStatus.LEFT)


class MessageType(str, Enum):
    TEXT = "text"
    SYSTEM = "system"


class ChatMessageInDB(MongoModel):
    session_id: str
    sender_id: str
    content: str
    type: MessageType = MessageType.TEXT
    created_at: datetime


class FriendRequestStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class FriendRequestInDB(MongoModel):
    requester_id: str
    recipient_id: str
    status: FriendRequestStatus = FriendRequestStatus.PENDING
    created_at: datetime
    updated_at: Optional[datetime] = None
