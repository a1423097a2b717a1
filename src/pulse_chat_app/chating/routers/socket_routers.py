import json
import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from uuid import UUID
from fastapi import APIRouter, WebSocket, WebSocketDisconnect, status
from pydantic import ValidationError
from pulse_chat_app.core.config.settings import settings
from pulse_chat_app.users.models.user_models import UserModel
from pulse_chat_app.users.schemas.user_schemas import ProfileSchema
from pulse_chat_app.users.utils.get_current_user import get_ws_current_user
from pulse_chat_app.chating.models.message_model import Attachment, MessageModel
from pulse_chat_app.chating.realtime.connection_manager import manager
from pulse_chat_app.chating.realtime.presence import OnlineUser
from pulse_chat_app.chating.realtime.relay import presence, typing_payload
from pulse_chat_app.chating.schemas import events
from pulse_chat_app.chating.schemas.events import (
    ChatRef, MarkAsReadPayload, ReactionPayload, SendMessagePayload, TypingPayload,
)
from pulse_chat_app.chating.utils import reactions, receipts
from pulse_chat_app.chating.utils.chat_access import get_chat_for_participant
from pulse_chat_app.chating.utils.messages import MessageContentRequired, create_message
from pulse_chat_app.chating.utils.populate import populate_message, populate_reactions

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Websocket"])

ACCESS_DENIED = "Access denied to this chat"


@dataclass
class SocketSession:
    sid: str
    user_id: UUID
    username: str

    @property
    def uid(self) -> str:
        return str(self.user_id)


async def _deny(session: SocketSession, reason: str):
    logger.warning(f"{session.username} ({session.sid}): {reason}")
    await manager.send_to(session.sid, events.ERROR, reason)


# ---- client events ----

async def on_join_chat(session: SocketSession, data):
    if isinstance(data, str):
        data = {"chatId": data}
    payload = ChatRef.model_validate(data)

    chat = await get_chat_for_participant(payload.chat_id, session.user_id)
    if not chat:
        await _deny(session, ACCESS_DENIED)
        return

    room = str(chat.id)
    manager.join(session.sid, room)
    logger.info(f"{session.username} joined chat: {room}")

    await receipts.mark_delivered(chat.id, session.user_id)
    await manager.emit(
        events.USER_JOINED_CHAT,
        {"userId": session.uid, "username": session.username},
        room=room,
        skip_sid=session.sid,
    )


async def on_leave_chat(session: SocketSession, data):
    if isinstance(data, str):
        data = {"chatId": data}
    payload = ChatRef.model_validate(data)
    room = str(payload.chat_id)

    manager.leave(session.sid, room)
    logger.info(f"{session.username} left chat: {room}")

    if await presence.stop_typing(room, session.uid):
        await manager.emit(
            events.USER_TYPING, typing_payload(session.uid, session.username, False),
            room=room, skip_sid=session.sid,
        )


async def on_send_message(session: SocketSession, data):
    payload = SendMessagePayload.model_validate(data)

    chat = await get_chat_for_participant(payload.chat_id, session.user_id)
    if not chat:
        await _deny(session, ACCESS_DENIED)
        return

    if payload.reply_to:
        target = await MessageModel.find_one({"_id": payload.reply_to, "chat_id": chat.id})
        if not target:
            await _deny(session, "Reply target not found")
            return

    try:
        message = await create_message(
            chat,
            session.user_id,
            payload.content,
            message_type=payload.message_type,
            reply_to_id=payload.reply_to,
            attachments=[Attachment(**a.model_dump()) for a in payload.attachments],
        )
    except MessageContentRequired as e:
        await _deny(session, str(e))
        return

    logger.debug(f"Message {message.id} saved in chat {chat.id}")
    populated = await populate_message(message)
    await manager.emit(
        events.RECEIVE_MESSAGE, populated.model_dump(mode="json", by_alias=True), room=str(chat.id)
    )


async def on_typing(session: SocketSession, data):
    payload = TypingPayload.model_validate(data)
    room = str(payload.chat_id)

    if not manager.in_room(session.sid, room):
        await _deny(session, "Join the chat before sending typing updates")
        return

    if payload.is_typing:
        await presence.start_typing(room, session.uid, session.username)
    else:
        await presence.stop_typing(room, session.uid)

    await manager.emit(
        events.USER_TYPING, typing_payload(session.uid, session.username, payload.is_typing),
        room=room, skip_sid=session.sid,
    )


async def on_add_reaction(session: SocketSession, data):
    payload = ReactionPayload.model_validate(data)

    message = await MessageModel.get(payload.message_id)
    if not message:
        await _deny(session, "Message not found")
        return
    if not await get_chat_for_participant(message.chat_id, session.user_id):
        await _deny(session, ACCESS_DENIED)
        return

    if payload.emoji:
        updated = await reactions.set_reaction(message.id, session.user_id, payload.emoji)
    else:
        updated = await reactions.remove_reaction(message.id, session.user_id)

    populated = await populate_reactions(updated or [])
    await manager.emit(
        events.REACTION_UPDATE,
        {
            "messageId": str(message.id),
            "reactions": [r.model_dump(mode="json", by_alias=True) for r in populated],
        },
        room=str(message.chat_id),
    )


async def on_mark_as_read(session: SocketSession, data):
    payload = MarkAsReadPayload.model_validate(data)

    if not await get_chat_for_participant(payload.chat_id, session.user_id):
        await _deny(session, ACCESS_DENIED)
        return

    read_at = datetime.now(timezone.utc)
    await receipts.mark_read(payload.chat_id, session.user_id, payload.message_ids, read_at=read_at)
    await manager.emit(
        events.MESSAGES_READ,
        {
            "userId": session.uid,
            "messageIds": [str(mid) for mid in payload.message_ids],
            "readAt": read_at.isoformat(),
        },
        room=str(payload.chat_id),
        skip_sid=session.sid,
    )


EVENT_HANDLERS = {
    events.JOIN_CHAT: on_join_chat,
    events.LEAVE_CHAT: on_leave_chat,
    events.SEND_MESSAGE: on_send_message,
    events.TYPING: on_typing,
    events.ADD_REACTION: on_add_reaction,
    events.MARK_AS_READ: on_mark_as_read,
}

FAILURE_MESSAGES = {
    events.JOIN_CHAT: "Failed to join chat",
    events.SEND_MESSAGE: "Failed to send message",
    events.ADD_REACTION: "Failed to add reaction",
    events.MARK_AS_READ: "Failed to mark messages as read",
}


async def dispatch(session: SocketSession, raw: str):
    try:
        envelope = json.loads(raw)
    except json.JSONDecodeError:
        await manager.send_to(session.sid, events.ERROR, "Malformed event")
        return
    if not isinstance(envelope, dict) or not isinstance(envelope.get("event"), str):
        await manager.send_to(session.sid, events.ERROR, "Malformed event")
        return

    event = envelope["event"]
    if event == events.PONG:
        return

    handler = EVENT_HANDLERS.get(event)
    if handler is None:
        await manager.send_to(session.sid, events.ERROR, f"Unknown event: {event}")
        return

    try:
        await handler(session, envelope.get("data"))
    except ValidationError:
        await manager.send_to(session.sid, events.ERROR, f"Invalid payload for {event}")
    except Exception as e:
        logger.error(f"Error handling {event} for {session.username}: {e}", exc_info=True)
        await manager.send_to(session.sid, events.ERROR, FAILURE_MESSAGES.get(event, f"Failed to process {event}"))


# ---- connection lifecycle ----

async def on_connect(session: SocketSession, user: UserModel):
    profile = ProfileSchema.model_validate(user.profile).model_dump(mode="json", by_alias=True)
    snapshot = await presence.add(OnlineUser(
        user_id=session.uid,
        username=session.username,
        profile=profile,
        socket_id=session.sid,
    ))
    await user.set({UserModel.is_online: True})
    await manager.emit(events.ONLINE_USERS, snapshot)


async def on_disconnect(session: SocketSession):
    manager.disconnect(session.sid)
    removed, snapshot = await presence.remove(session.uid, session.sid)

    for entry in await presence.clear_user_typing(session.uid):
        await manager.emit(
            events.USER_TYPING, typing_payload(session.uid, session.username, False), room=entry.chat_id
        )

    if removed:
        await UserModel.find_one(UserModel.id == session.user_id).update({
            "$set": {"is_online": False, "last_seen": datetime.now(timezone.utc)}
        })

    await manager.emit(events.ONLINE_USERS, snapshot)


@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    token = websocket.query_params.get("token")
    if not token:
        auth_header = websocket.headers.get("authorization", "")
        if auth_header.lower().startswith("bearer "):
            token = auth_header[7:]

    user = await get_ws_current_user(token)
    if user is None:
        logger.warning("Socket connection refused: authentication error")
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    sid = await manager.connect(websocket)
    session = SocketSession(sid=sid, user_id=user.id, username=user.username)
    logger.info(f"User connected: {session.username} ({sid})")

    # Heartbeat task
    async def heartbeat():
        try:
            while True:
                await asyncio.sleep(settings.HEARTBEAT_INTERVAL_SECONDS)
                await websocket.send_json({"event": events.PING, "data": None})
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.debug(f"Heartbeat stopped for {sid}: {e}")

    heartbeat_task = asyncio.create_task(heartbeat())

    try:
        await on_connect(session, user)
        while True:
            raw = await websocket.receive_text()
            await dispatch(session, raw)
    except WebSocketDisconnect:
        pass
    except Exception as e:
        logger.error(f"WebSocket Loop Error for user {session.username}: {e}", exc_info=True)
    finally:
        heartbeat_task.cancel()
        logger.info(f"User disconnected: {session.username} ({sid})")
        try:
            await on_disconnect(session)
        except Exception as e:
            logger.error(f"Disconnect cleanup failed for {session.username}: {e}", exc_info=True)
