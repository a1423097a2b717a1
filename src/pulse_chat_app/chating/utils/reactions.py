"""
One reaction per user per message.

Setting replaces the emoji of an existing entry in place, or pushes a new
entry only while the user has none. Removing is its own operation.
"""
from datetime import datetime, timezone
from typing import List, Optional
from uuid import UUID
from pulse_chat_app.chating.models.message_model import MessageModel, Reaction


async def set_reaction(message_id: UUID, user_id: UUID, emoji: str) -> Optional[List[Reaction]]:
    now = datetime.now(timezone.utc)

    # Two attempts: a concurrent push between our replace and our push is
    # caught by the second replace.
    for _ in range(2):
        replaced = await MessageModel.find_one({
            "_id": message_id,
            "reactions.user_id": user_id,
        }).update({
            "$set": {"reactions.$.emoji": emoji, "reactions.$.created_at": now}
        })
        if replaced.matched_count:
            break

        pushed = await MessageModel.find_one({
            "_id": message_id,
            "reactions.user_id": {"$ne": user_id},
        }).update({
            "$push": {"reactions": {"user_id": user_id, "emoji": emoji, "created_at": now}}
        })
        if pushed.matched_count:
            break

    return await current_reactions(message_id)


async def remove_reaction(message_id: UUID, user_id: UUID) -> Optional[List[Reaction]]:
    await MessageModel.find_one({"_id": message_id}).update({
        "$pull": {"reactions": {"user_id": user_id}}
    })
    return await current_reactions(message_id)


async def current_reactions(message_id: UUID) -> Optional[List[Reaction]]:
    message = await MessageModel.get(message_id)
    if message is None:
        return None
    return message.reactions
