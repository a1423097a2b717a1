"""
Delivery and read receipts.

Each receipt list holds at most one entry per user. The guard lives in the
update filter (``"<list>.user_id": {"$ne": user}``) so the check and the push
happen in one atomic write per message document.
"""
from datetime import datetime, timezone
from typing import Iterable, Optional
from uuid import UUID
from pulse_chat_app.chating.models.message_model import MessageModel


async def mark_delivered(chat_id: UUID, user_id: UUID, delivered_at: Optional[datetime] = None) -> int:
    """Mark every message of the chat not sent by ``user_id`` as delivered to them."""
    delivered_at = delivered_at or datetime.now(timezone.utc)
    result = await MessageModel.find({
        "chat_id": chat_id,
        "sender_id": {"$ne": user_id},
        "delivered_to.user_id": {"$ne": user_id},
    }).update({
        "$push": {"delivered_to": {"user_id": user_id, "delivered_at": delivered_at}}
    })
    return result.modified_count if result else 0


async def mark_read(
    chat_id: UUID,
    user_id: UUID,
    message_ids: Iterable[UUID],
    read_at: Optional[datetime] = None,
) -> int:
    """Add a read receipt for ``user_id`` to the given messages of one chat."""
    ids = list(message_ids)
    if not ids:
        return 0
    read_at = read_at or datetime.now(timezone.utc)
    result = await MessageModel.find({
        "_id": {"$in": ids},
        "chat_id": chat_id,
        "sender_id": {"$ne": user_id},
        "read_by.user_id": {"$ne": user_id},
    }).update({
        "$push": {"read_by": {"user_id": user_id, "read_at": read_at}}
    })
    return result.modified_count if result else 0


async def count_unread(chat_id: UUID, user_id: UUID) -> int:
    return await MessageModel.find({
        "chat_id": chat_id,
        "sender_id": {"$ne": user_id},
        "read_by.user_id": {"$ne": user_id},
    }).count()
