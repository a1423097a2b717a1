from typing import Dict, Iterable, List, Optional
from uuid import UUID
from beanie.operators import In
from pulse_chat_app.users.models.user_models import UserModel
from pulse_chat_app.users.schemas.user_schemas import UserSummary
from pulse_chat_app.chating.models.chat_model import ChatModel
from pulse_chat_app.chating.models.message_model import MessageModel
from pulse_chat_app.chating.schemas.chat import (
    ChatListItem, ChatMessageResponse, ChatResponse, LastMessagePreview, ReactionResponse, SenderInfo,
)


async def load_users(user_ids: Iterable[UUID]) -> Dict[UUID, UserModel]:
    ids = list({uid for uid in user_ids if uid is not None})
    if not ids:
        return {}
    users = await UserModel.find(In(UserModel.id, ids)).to_list()
    return {u.id: u for u in users}


async def load_messages(message_ids: Iterable[UUID]) -> Dict[UUID, MessageModel]:
    ids = list({mid for mid in message_ids if mid is not None})
    if not ids:
        return {}
    messages = await MessageModel.find(In(MessageModel.id, ids)).to_list()
    return {m.id: m for m in messages}


def _sender_info(users: Dict[UUID, UserModel], user_id: UUID) -> Optional[SenderInfo]:
    user = users.get(user_id)
    if user is None:
        return None
    return SenderInfo(id=user.id, username=user.username)


def _summary(users: Dict[UUID, UserModel], user_id: UUID) -> Optional[UserSummary]:
    user = users.get(user_id)
    if user is None:
        return None
    return UserSummary.model_validate(user)


async def populate_messages(messages: List[MessageModel]) -> List[ChatMessageResponse]:
    """
    Resolve sender, reply preview and reaction authors for a batch of messages.
    """
    replies = await load_messages(m.reply_to_id for m in messages)

    user_ids = set()
    for message in messages:
        user_ids.add(message.sender_id)
        user_ids.update(r.user_id for r in message.reactions)
    user_ids.update(r.sender_id for r in replies.values())
    users = await load_users(user_ids)

    populated = []
    for message in messages:
        reply_to = None
        reply = replies.get(message.reply_to_id) if message.reply_to_id else None
        if reply is not None:
            reply_to = {
                "id": reply.id,
                "content": reply.content,
                "sender": _sender_info(users, reply.sender_id),
            }

        populated.append(ChatMessageResponse.model_validate({
            "id": message.id,
            "chat": message.chat_id,
            "sender": _summary(users, message.sender_id),
            "content": message.content,
            "message_type": message.message_type,
            "attachments": [a.model_dump() for a in message.attachments],
            "reply_to": reply_to,
            "reactions": reaction_entries(message.reactions, users),
            "delivered_to": [r.model_dump() for r in message.delivered_to],
            "read_by": [r.model_dump() for r in message.read_by],
            "is_edited": message.is_edited,
            "edit_history": [e.model_dump() for e in message.edit_history],
            "is_deleted": message.is_deleted,
            "timestamp": message.timestamp,
        }))
    return populated


async def populate_message(message: MessageModel) -> ChatMessageResponse:
    return (await populate_messages([message]))[0]


def reaction_entries(reactions, users: Dict[UUID, UserModel]) -> List[dict]:
    entries = []
    for reaction in reactions:
        user = users.get(reaction.user_id)
        entries.append({
            "user": {"id": reaction.user_id, "username": user.username if user else ""},
            "emoji": reaction.emoji,
            "created_at": reaction.created_at,
        })
    return entries


async def populate_reactions(reactions) -> List[ReactionResponse]:
    users = await load_users(r.user_id for r in reactions)
    return [ReactionResponse.model_validate(e) for e in reaction_entries(reactions, users)]


async def populate_chats(chats: List[ChatModel], unread_counts: Optional[Dict[UUID, int]] = None) -> list:
    """
    Resolve participants and last message for a batch of chats. With
    ``unread_counts`` the result items carry ``unreadCount`` as well.
    """
    last_messages = await load_messages(c.last_message_id for c in chats)

    user_ids = set()
    for chat in chats:
        user_ids.update(chat.participant_ids())
    user_ids.update(m.sender_id for m in last_messages.values())
    users = await load_users(user_ids)

    schema = ChatListItem if unread_counts is not None else ChatResponse
    populated = []
    for chat in chats:
        last_message = None
        last = last_messages.get(chat.last_message_id) if chat.last_message_id else None
        if last is not None:
            last_message = LastMessagePreview(
                id=last.id,
                content=last.content,
                message_type=last.message_type,
                sender=_sender_info(users, last.sender_id),
                is_deleted=last.is_deleted,
                timestamp=last.timestamp,
            )

        data = {
            "id": chat.id,
            "participants": [
                {"user": _summary(users, p.user_id), "joined_at": p.joined_at, "role": p.role}
                for p in chat.participants
            ],
            "is_group_chat": chat.is_group_chat,
            "group_name": chat.group_name,
            "group_description": chat.group_description,
            "group_avatar": chat.group_avatar,
            "last_message": last_message,
            "last_activity": chat.last_activity,
            "is_archived": chat.is_archived,
            "muted_by": [m.model_dump() for m in chat.muted_by],
            "created_by": chat.created_by,
            "created_at": chat.created_at,
        }
        if unread_counts is not None:
            data["unread_count"] = unread_counts.get(chat.id, 0)
        populated.append(schema.model_validate(data))
    return populated


async def populate_chat(chat: ChatModel) -> ChatResponse:
    return (await populate_chats([chat]))[0]
