from typing import Optional
from uuid import UUID
from pulse_chat_app.chating.models.chat_model import ChatModel, Participant, ParticipantRole


async def get_chat_for_participant(chat_id: UUID, user_id: UUID) -> Optional[ChatModel]:
    """The chat, but only if ``user_id`` is one of its participants."""
    return await ChatModel.find_one({"_id": chat_id, "participants.user_id": user_id})


async def find_individual_chat(user_id: UUID, other_user_id: UUID) -> Optional[ChatModel]:
    return await ChatModel.find_one({
        "is_group_chat": False,
        "$and": [
            {"participants.user_id": user_id},
            {"participants.user_id": other_user_id},
        ],
    })


async def get_or_create_individual_chat(user_id: UUID, other_user_id: UUID) -> ChatModel:
    """
    Lookup-or-create the direct chat between two users.

    There is no unique index over the pair, so two concurrent first requests
    can still both create a chat.
    """
    chat = await find_individual_chat(user_id, other_user_id)
    if chat:
        return chat

    chat = ChatModel(
        participants=[Participant(user_id=user_id), Participant(user_id=other_user_id)],
        is_group_chat=False,
        created_by=user_id,
    )
    await chat.insert()
    return chat


async def create_group_chat(
    creator_id: UUID,
    member_ids: list,
    name: str,
    description: Optional[str] = None,
    avatar: Optional[str] = None,
) -> ChatModel:
    participants = [Participant(user_id=creator_id, role=ParticipantRole.ADMIN)]
    participants += [Participant(user_id=uid) for uid in member_ids]

    chat = ChatModel(
        participants=participants,
        is_group_chat=True,
        group_name=name,
        group_description=description,
        group_avatar=avatar,
        created_by=creator_id,
    )
    await chat.insert()
    return chat
