from enum import Enum
from uuid import UUID
from pydantic import BaseModel, Field
from pymongo import ASCENDING, DESCENDING, IndexModel
from datetime import datetime, timezone
from typing import Optional, List
from pulse_chat_app.core.base.base import BaseCollection


class MessageType(str, Enum):
    TEXT = "text"
    IMAGE = "image"
    FILE = "file"
    AUDIO = "audio"
    VIDEO = "video"
    EMOJI = "emoji"
    REPLY = "reply"
    SYSTEM = "system"


# Types that cannot be sent without text content
CONTENT_REQUIRED_TYPES = {MessageType.TEXT, MessageType.REPLY}


class Attachment(BaseModel):
    url: str
    filename: Optional[str] = None
    size: Optional[int] = None
    mime_type: Optional[str] = None


class Reaction(BaseModel):
    user_id: UUID
    emoji: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class DeliveryReceipt(BaseModel):
    user_id: UUID
    delivered_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class ReadReceipt(BaseModel):
    user_id: UUID
    read_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class EditEntry(BaseModel):
    content: Optional[str] = None
    edited_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class MessageModel(BaseCollection):
    sender_id: UUID
    chat_id: UUID
    content: Optional[str] = None
    message_type: MessageType = MessageType.TEXT
    attachments: List[Attachment] = []
    reply_to_id: Optional[UUID] = None
    reactions: List[Reaction] = []
    delivered_to: List[DeliveryReceipt] = []
    read_by: List[ReadReceipt] = []
    is_edited: bool = False
    edit_history: List[EditEntry] = []
    is_deleted: bool = False
    deleted_for: List[UUID] = []
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    class Settings:
        name = "messages"
        indexes = [
            IndexModel([("chat_id", ASCENDING), ("timestamp", DESCENDING)]),
            IndexModel([("sender_id", ASCENDING)]),
        ]
