import logging
from pulse_chat_app.core.config.settings import settings
from pulse_chat_app.chating.realtime.connection_manager import manager
from pulse_chat_app.chating.realtime.presence import PresenceTracker, TypingEntry
from pulse_chat_app.chating.schemas.events import USER_TYPING

logger = logging.getLogger(__name__)

presence = PresenceTracker(typing_timeout=settings.TYPING_TIMEOUT_SECONDS)


def typing_payload(user_id: str, username: str, is_typing: bool) -> dict:
    return {"userId": user_id, "username": username, "isTyping": is_typing}


async def broadcast_typing_expired(entry: TypingEntry) -> None:
    await manager.emit(USER_TYPING, typing_payload(entry.user_id, entry.username, False), room=entry.chat_id)


def start_relay() -> None:
    presence.start_sweeper(settings.TYPING_SWEEP_INTERVAL_SECONDS, broadcast_typing_expired)
    logger.info("Socket relay started")


async def stop_relay() -> None:
    await presence.stop()
    await manager.close()
    logger.info("Socket relay stopped")
