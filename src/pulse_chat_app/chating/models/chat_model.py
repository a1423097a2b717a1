from enum import Enum
from uuid import UUID
from beanie import before_event, Replace, Save
from pydantic import BaseModel, Field
from pymongo import ASCENDING, DESCENDING, IndexModel
from datetime import datetime, timezone
from typing import Optional, List
from pulse_chat_app.core.base.base import BaseCollection


class ParticipantRole(str, Enum):
    ADMIN = "admin"
    MEMBER = "member"


class Participant(BaseModel):
    user_id: UUID
    joined_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    role: ParticipantRole = ParticipantRole.MEMBER


class MuteSetting(BaseModel):
    user_id: UUID
    # None means muted indefinitely
    muted_until: Optional[datetime] = None


class ChatModel(BaseCollection):
    participants: List[Participant] = []
    is_group_chat: bool = False
    group_name: Optional[str] = None
    group_description: Optional[str] = None
    group_avatar: Optional[str] = None
    last_message_id: Optional[UUID] = None
    last_activity: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    is_archived: bool = False
    muted_by: List[MuteSetting] = []
    created_by: Optional[UUID] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @before_event([Save, Replace])
    def update_timestamp(self):
        self.updated_at = datetime.now(timezone.utc)

    def participant_ids(self) -> List[UUID]:
        return [p.user_id for p in self.participants]

    def has_participant(self, user_id: UUID) -> bool:
        return any(p.user_id == user_id for p in self.participants)

    class Settings:
        name = "chats"
        indexes = [
            IndexModel([("participants.user_id", ASCENDING)]),
            IndexModel([("last_activity", DESCENDING)]),
            IndexModel([("is_archived", ASCENDING)]),
        ]
