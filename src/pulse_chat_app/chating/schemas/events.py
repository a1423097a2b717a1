from typing import List, Optional
from uuid import UUID
from pulse_chat_app.core.base.base import CamelModel
from pulse_chat_app.chating.models.message_model import MessageType
from pulse_chat_app.chating.schemas.chat import AttachmentSchema


# Client -> server
JOIN_CHAT = "joinChat"
LEAVE_CHAT = "leaveChat"
SEND_MESSAGE = "sendMessage"
TYPING = "typing"
ADD_REACTION = "addReaction"
MARK_AS_READ = "markAsRead"
PONG = "pong"

# Server -> client
ONLINE_USERS = "onlineUsers"
USER_TYPING = "userTyping"
RECEIVE_MESSAGE = "receiveMessage"
REACTION_UPDATE = "reactionUpdate"
MESSAGES_READ = "messagesRead"
USER_JOINED_CHAT = "userJoinedChat"
ERROR = "error"
PING = "ping"


class ChatRef(CamelModel):
    chat_id: UUID


class SendMessagePayload(CamelModel):
    chat_id: UUID
    content: Optional[str] = None
    reply_to: Optional[UUID] = None
    message_type: MessageType = MessageType.TEXT
    attachments: List[AttachmentSchema] = []


class TypingPayload(CamelModel):
    chat_id: UUID
    is_typing: bool


class ReactionPayload(CamelModel):
    message_id: UUID
    # Empty or missing removes the caller's reaction
    emoji: Optional[str] = None


class MarkAsReadPayload(CamelModel):
    chat_id: UUID
    message_ids: List[UUID]
