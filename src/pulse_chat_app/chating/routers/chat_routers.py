import logging
from datetime import datetime, timedelta, timezone
from typing import List, Optional
from uuid import UUID
from fastapi import APIRouter, Depends, HTTPException, Query, status
from pymongo.errors import OperationFailure
from pulse_chat_app.users.models.user_models import UserModel
from pulse_chat_app.users.schemas.user_schemas import MessageResponse
from pulse_chat_app.users.utils.get_current_user import get_current_user
from pulse_chat_app.chating.models.chat_model import ChatModel, MuteSetting
from pulse_chat_app.chating.models.message_model import MessageModel
from pulse_chat_app.chating.schemas.chat import (
    ArchiveRequest, ChatListItem, ChatMessageResponse, ChatResponse, DeleteMessageRequest,
    EditMessageRequest, GroupChatRequest, IndividualChatRequest, MuteRequest, ReactRequest,
    ReactionResponse,
)
from pulse_chat_app.chating.utils import chat_access, receipts, reactions
from pulse_chat_app.chating.utils.messages import (
    can_delete_for_everyone, delete_for_everyone, delete_for_user, edit_message,
)
from pulse_chat_app.chating.utils.populate import (
    populate_chat, populate_chats, populate_message, populate_messages, populate_reactions,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/chats", tags=["Chat"])

SEARCH_LIMIT = 20


async def _participant_chat_or_403(chat_id: UUID, user: UserModel) -> ChatModel:
    chat = await chat_access.get_chat_for_participant(chat_id, user.id)
    if not chat:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")
    return chat


async def _message_or_404(message_id: UUID) -> MessageModel:
    message = await MessageModel.get(message_id)
    if not message:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Message not found")
    return message


@router.get("", response_model=List[ChatListItem])
async def get_chats(current_user: UserModel = Depends(get_current_user)):
    """The caller's active chats, most recent activity first, with unread counts."""
    chats = await ChatModel.find({
        "participants.user_id": current_user.id,
        "is_archived": False,
    }).sort(-ChatModel.last_activity).to_list()

    unread = {chat.id: await receipts.count_unread(chat.id, current_user.id) for chat in chats}
    return await populate_chats(chats, unread_counts=unread)


@router.post("/individual", response_model=ChatResponse)
async def get_or_create_individual_chat(
    data: IndividualChatRequest,
    current_user: UserModel = Depends(get_current_user),
):
    if data.other_user_id == current_user.id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Cannot start a chat with yourself")

    other_user = await UserModel.get(data.other_user_id)
    if not other_user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    chat = await chat_access.get_or_create_individual_chat(current_user.id, other_user.id)
    return await populate_chat(chat)


@router.post("/group", response_model=ChatResponse, status_code=status.HTTP_201_CREATED)
async def create_group_chat(data: GroupChatRequest, current_user: UserModel = Depends(get_current_user)):
    member_ids = list(dict.fromkeys(uid for uid in data.participant_ids if uid != current_user.id))
    if len(member_ids) < 2:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="A group chat needs at least two other participants",
        )

    found = await UserModel.find({"_id": {"$in": member_ids}}).count()
    if found != len(member_ids):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    chat = await chat_access.create_group_chat(
        current_user.id, member_ids, data.name, data.description, data.avatar,
    )
    logger.info(f"Group chat {chat.id} created by {current_user.id} with {len(member_ids)} members")
    return await populate_chat(chat)


@router.get("/{chat_id}/messages", response_model=List[ChatMessageResponse])
async def get_messages(
    chat_id: UUID,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    current_user: UserModel = Depends(get_current_user),
):
    """
    One page of history. Pages count back from the newest message, each page is
    returned oldest-first, and the returned messages are marked read.
    """
    await _participant_chat_or_403(chat_id, current_user)

    messages = await MessageModel.find({
        "chat_id": chat_id,
        "is_deleted": False,
        "deleted_for": {"$ne": current_user.id},
    }).sort(-MessageModel.timestamp).skip((page - 1) * limit).limit(limit).to_list()

    incoming = [m.id for m in messages if m.sender_id != current_user.id]
    if incoming:
        await receipts.mark_read(chat_id, current_user.id, incoming)
        messages = await MessageModel.find({"_id": {"$in": [m.id for m in messages]}}).sort(
            -MessageModel.timestamp
        ).to_list()

    messages.reverse()
    return await populate_messages(messages)


@router.get("/{chat_id}/search", response_model=List[ChatMessageResponse])
async def search_messages(
    chat_id: UUID,
    query: str = Query(""),
    current_user: UserModel = Depends(get_current_user),
):
    if not query:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Search query is required")
    await _participant_chat_or_403(chat_id, current_user)

    try:
        messages = await MessageModel.find({
            "chat_id": chat_id,
            "content": {"$regex": query, "$options": "i"},
            "is_deleted": False,
            "deleted_for": {"$ne": current_user.id},
        }).sort(-MessageModel.timestamp).limit(SEARCH_LIMIT).to_list()
    except OperationFailure as e:
        # Patterns are compiled by the server
        logger.warning(f"Search pattern rejected by MongoDB: {e}")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid search pattern")

    return await populate_messages(messages)


@router.patch("/{chat_id}/archive", response_model=MessageResponse)
async def archive_chat(chat_id: UUID, data: ArchiveRequest, current_user: UserModel = Depends(get_current_user)):
    chat = await chat_access.get_chat_for_participant(chat_id, current_user.id)
    if not chat:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Chat not found")

    await ChatModel.find_one({"_id": chat.id}).update({
        "$set": {"is_archived": data.archive, "updated_at": datetime.now(timezone.utc)}
    })
    return MessageResponse(message="Chat archived" if data.archive else "Chat unarchived")


@router.patch("/{chat_id}/mute", response_model=MessageResponse)
async def mute_chat(chat_id: UUID, data: MuteRequest, current_user: UserModel = Depends(get_current_user)):
    chat = await chat_access.get_chat_for_participant(chat_id, current_user.id)
    if not chat:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Chat not found")

    # Drop the caller's previous setting, then add the new one only while none is present
    await ChatModel.find_one({"_id": chat.id}).update({
        "$pull": {"muted_by": {"user_id": current_user.id}}
    })
    if data.mute:
        muted_until = None
        if data.duration:
            muted_until = datetime.now(timezone.utc) + timedelta(hours=data.duration)
        setting = MuteSetting(user_id=current_user.id, muted_until=muted_until)
        await ChatModel.find_one({
            "_id": chat.id,
            "muted_by.user_id": {"$ne": current_user.id},
        }).update({"$push": {"muted_by": setting.model_dump()}})
    return MessageResponse(message="Chat muted" if data.mute else "Chat unmuted")


@router.post("/messages/{message_id}/react", response_model=List[ReactionResponse])
async def react_to_message(
    message_id: UUID,
    data: ReactRequest,
    current_user: UserModel = Depends(get_current_user),
):
    """
    Set the caller's reaction. An empty or missing emoji removes it instead.
    """
    message = await _message_or_404(message_id)
    await _participant_chat_or_403(message.chat_id, current_user)

    if data.emoji:
        updated = await reactions.set_reaction(message.id, current_user.id, data.emoji)
    else:
        updated = await reactions.remove_reaction(message.id, current_user.id)
    return await populate_reactions(updated or [])


@router.delete("/messages/{message_id}/react", response_model=List[ReactionResponse])
async def remove_reaction(message_id: UUID, current_user: UserModel = Depends(get_current_user)):
    message = await _message_or_404(message_id)
    await _participant_chat_or_403(message.chat_id, current_user)

    updated = await reactions.remove_reaction(message.id, current_user.id)
    return await populate_reactions(updated or [])


@router.patch("/messages/{message_id}", response_model=ChatMessageResponse)
async def update_message(
    message_id: UUID,
    data: EditMessageRequest,
    current_user: UserModel = Depends(get_current_user),
):
    message = await _message_or_404(message_id)
    if message.sender_id != current_user.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="You can only edit your own messages")
    if message.is_deleted:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Cannot edit a deleted message")
    if not data.content.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Message content is required")

    message = await edit_message(message, data.content)
    return await populate_message(message)


@router.delete("/messages/{message_id}", response_model=MessageResponse)
async def delete_message(
    message_id: UUID,
    data: Optional[DeleteMessageRequest] = None,
    current_user: UserModel = Depends(get_current_user),
):
    message = await _message_or_404(message_id)
    if message.sender_id != current_user.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="You can only delete your own messages")

    if data and data.delete_for_everyone:
        if not can_delete_for_everyone(message):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Can only delete for everyone within 10 minutes",
            )
        await delete_for_everyone(message)
    else:
        await delete_for_user(message, current_user.id)

    return MessageResponse(message="Message deleted")
