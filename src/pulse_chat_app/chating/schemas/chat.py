from pydantic import Field
from typing import Optional, List
from datetime import datetime
from uuid import UUID
from pulse_chat_app.core.base.base import BaseResponse, CamelModel
from pulse_chat_app.chating.models.chat_model import ParticipantRole
from pulse_chat_app.chating.models.message_model import MessageType
from pulse_chat_app.users.schemas.user_schemas import UserSummary


class SenderInfo(BaseResponse):
    username: str


# ---- messages ----

class AttachmentSchema(CamelModel):
    url: str
    filename: Optional[str] = None
    size: Optional[int] = None
    mime_type: Optional[str] = None


class ReactionResponse(CamelModel):
    user: SenderInfo
    emoji: str
    created_at: datetime


class DeliveryReceiptResponse(CamelModel):
    user_id: UUID
    delivered_at: datetime


class ReadReceiptResponse(CamelModel):
    user_id: UUID
    read_at: datetime


class EditEntryResponse(CamelModel):
    content: Optional[str] = None
    edited_at: datetime


class ReplyPreview(BaseResponse):
    content: Optional[str] = None
    sender: Optional[SenderInfo] = None


class ChatMessageResponse(BaseResponse):
    chat: UUID
    sender: Optional[UserSummary] = None
    content: Optional[str] = None
    message_type: MessageType
    attachments: List[AttachmentSchema] = []
    reply_to: Optional[ReplyPreview] = None
    reactions: List[ReactionResponse] = []
    delivered_to: List[DeliveryReceiptResponse] = []
    read_by: List[ReadReceiptResponse] = []
    is_edited: bool = False
    edit_history: List[EditEntryResponse] = []
    is_deleted: bool = False
    timestamp: datetime


class ReactRequest(CamelModel):
    emoji: Optional[str] = None


class EditMessageRequest(CamelModel):
    content: str = Field(min_length=1)


class DeleteMessageRequest(CamelModel):
    delete_for_everyone: bool = False


# ---- chats ----

class ParticipantResponse(CamelModel):
    user: Optional[UserSummary] = None
    joined_at: datetime
    role: ParticipantRole


class MuteSettingResponse(CamelModel):
    user_id: UUID
    muted_until: Optional[datetime] = None


class LastMessagePreview(BaseResponse):
    content: Optional[str] = None
    message_type: MessageType
    sender: Optional[SenderInfo] = None
    is_deleted: bool = False
    timestamp: datetime


class ChatResponse(BaseResponse):
    participants: List[ParticipantResponse]
    is_group_chat: bool
    group_name: Optional[str] = None
    group_description: Optional[str] = None
    group_avatar: Optional[str] = None
    last_message: Optional[LastMessagePreview] = None
    last_activity: datetime
    is_archived: bool
    muted_by: List[MuteSettingResponse] = []
    created_by: Optional[UUID] = None
    created_at: datetime


class ChatListItem(ChatResponse):
    unread_count: int = 0


class IndividualChatRequest(CamelModel):
    other_user_id: UUID


class GroupChatRequest(CamelModel):
    name: str = Field(min_length=1)
    participant_ids: List[UUID]
    description: Optional[str] = None
    avatar: Optional[str] = None


class ArchiveRequest(CamelModel):
    archive: bool


class MuteRequest(CamelModel):
    mute: bool
    # Hours; None mutes indefinitely
    duration: Optional[float] = Field(default=None, gt=0)
