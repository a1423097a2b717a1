from datetime import datetime, timedelta, timezone
from typing import List, Optional
from uuid import UUID
from pulse_chat_app.core.config.settings import settings
from pulse_chat_app.chating.models.chat_model import ChatModel
from pulse_chat_app.chating.models.message_model import (
    Attachment, CONTENT_REQUIRED_TYPES, EditEntry, MessageModel, MessageType,
)

DELETED_PLACEHOLDER = "This message was deleted"


class MessageContentRequired(ValueError):
    pass


def as_utc(value: datetime) -> datetime:
    """MongoDB hands datetimes back naive; they are UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


async def create_message(
    chat: ChatModel,
    sender_id: UUID,
    content: Optional[str],
    message_type: MessageType = MessageType.TEXT,
    reply_to_id: Optional[UUID] = None,
    attachments: Optional[List[Attachment]] = None,
) -> MessageModel:
    """
    Persist a message and point the chat's last-message marker at it.
    """
    content = content.strip() if content else None
    if message_type in CONTENT_REQUIRED_TYPES and not content:
        raise MessageContentRequired("Message content is required")

    message = MessageModel(
        sender_id=sender_id,
        chat_id=chat.id,
        content=content,
        message_type=message_type,
        reply_to_id=reply_to_id,
        attachments=attachments or [],
    )
    await message.insert()

    await ChatModel.find_one({"_id": chat.id}).update({"$set": {
        "last_message_id": message.id,
        "last_activity": message.timestamp,
        "updated_at": datetime.now(timezone.utc),
    }})
    chat.last_message_id = message.id
    chat.last_activity = message.timestamp
    return message


def can_delete_for_everyone(message: MessageModel, now: Optional[datetime] = None) -> bool:
    now = now or datetime.now(timezone.utc)
    window = timedelta(minutes=settings.DELETE_FOR_EVERYONE_WINDOW_MINUTES)
    return as_utc(message.timestamp) >= now - window


async def delete_for_everyone(message: MessageModel) -> MessageModel:
    await MessageModel.find_one({"_id": message.id}).update({
        "$set": {"is_deleted": True, "content": DELETED_PLACEHOLDER}
    })
    return await message.fetch()


async def delete_for_user(message: MessageModel, user_id: UUID) -> MessageModel:
    await MessageModel.find_one({"_id": message.id}).update({"$addToSet": {"deleted_for": user_id}})
    return await message.fetch()


async def edit_message(message: MessageModel, content: str) -> MessageModel:
    """Replace the content and keep the previous text in the edit history."""
    previous = EditEntry(content=message.content)
    await MessageModel.find_one({"_id": message.id}).update({
        "$set": {"content": content.strip(), "is_edited": True},
        "$push": {"edit_history": previous.model_dump()},
    })
    return await message.fetch()
