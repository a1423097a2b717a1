"""
In-memory presence and typing tables for the socket channel.

Both tables belong to a single ``PresenceTracker`` and every read or write
goes through its lock, so handlers running on the event loop never observe a
half-applied change. Nothing here is persisted; a restart starts empty.
"""
import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Awaitable, Callable, Dict, List, Optional, Tuple
from pydantic import BaseModel, Field
from pulse_chat_app.core.base.base import CamelModel

logger = logging.getLogger(__name__)


class OnlineUser(CamelModel):
    user_id: str = Field(alias="id")
    username: str
    profile: dict = {}
    socket_id: str
    last_seen: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def as_payload(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class TypingEntry(BaseModel):
    chat_id: str
    user_id: str
    username: str
    started_at: float


class PresenceTracker:
    def __init__(self, typing_timeout: float = 10.0, clock: Callable[[], float] = time.monotonic):
        self.typing_timeout = typing_timeout
        self._clock = clock
        self._lock = asyncio.Lock()
        self._online: Dict[str, OnlineUser] = {}
        self._typing: Dict[Tuple[str, str], TypingEntry] = {}
        self._sweeper: Optional[asyncio.Task] = None

    # ---- presence ----

    async def add(self, entry: OnlineUser) -> List[dict]:
        """Register a connection and return the new online table."""
        async with self._lock:
            self._online[entry.user_id] = entry
            return self._snapshot()

    async def remove(self, user_id: str, socket_id: str) -> Tuple[bool, List[dict]]:
        """
        Drop the user's entry if it still belongs to ``socket_id``. A newer
        connection of the same user keeps them online.
        """
        async with self._lock:
            current = self._online.get(user_id)
            removed = current is not None and current.socket_id == socket_id
            if removed:
                del self._online[user_id]
            return removed, self._snapshot()

    async def online_users(self) -> List[dict]:
        async with self._lock:
            return self._snapshot()

    async def is_online(self, user_id: str) -> bool:
        async with self._lock:
            return user_id in self._online

    def _snapshot(self) -> List[dict]:
        return [u.as_payload() for u in self._online.values()]

    # ---- typing ----

    async def start_typing(self, chat_id: str, user_id: str, username: str) -> None:
        async with self._lock:
            self._typing[(chat_id, user_id)] = TypingEntry(
                chat_id=chat_id, user_id=user_id, username=username, started_at=self._clock()
            )

    async def stop_typing(self, chat_id: str, user_id: str) -> Optional[TypingEntry]:
        async with self._lock:
            return self._typing.pop((chat_id, user_id), None)

    async def clear_user_typing(self, user_id: str) -> List[TypingEntry]:
        """Drop every typing entry the user holds, across all chats."""
        async with self._lock:
            keys = [k for k in self._typing if k[1] == user_id]
            return [self._typing.pop(k) for k in keys]

    async def typing_in(self, chat_id: str) -> List[str]:
        async with self._lock:
            return [e.user_id for e in self._typing.values() if e.chat_id == chat_id]

    async def expire_typing(self, now: Optional[float] = None) -> List[TypingEntry]:
        """Remove and return entries older than the typing timeout."""
        now = self._clock() if now is None else now
        async with self._lock:
            expired = [k for k, e in self._typing.items() if now - e.started_at > self.typing_timeout]
            return [self._typing.pop(k) for k in expired]

    # ---- sweeper ----

    def start_sweeper(self, interval: float, on_expired: Callable[[TypingEntry], Awaitable[None]]) -> None:
        if self._sweeper and not self._sweeper.done():
            return
        self._sweeper = asyncio.create_task(self._sweep_forever(interval, on_expired))

    async def _sweep_forever(self, interval: float, on_expired) -> None:
        while True:
            await asyncio.sleep(interval)
            for entry in await self.expire_typing():
                try:
                    await on_expired(entry)
                except Exception as e:
                    logger.error(f"Typing sweep broadcast failed for chat {entry.chat_id}: {e}", exc_info=True)

    async def stop(self) -> None:
        """Cancel the sweeper and forget all state."""
        if self._sweeper:
            self._sweeper.cancel()
            try:
                await self._sweeper
            except asyncio.CancelledError:
                pass
            self._sweeper = None
        async with self._lock:
            self._online.clear()
            self._typing.clear()
        # Next lifespan may run on a different event loop
        self._lock = asyncio.Lock()
