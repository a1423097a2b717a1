import json
import uuid
import asyncio
import logging
from typing import Dict, Optional, Set
from fastapi import WebSocket
from fastapi.encoders import jsonable_encoder
import redis.asyncio as redis
from pulse_chat_app.core.config.settings import settings

logger = logging.getLogger(__name__)

CHANNEL = "chat_updates"


class ConnectionManager:
    """
    Sockets and rooms of this process. With ``REDIS_URL`` set, every emit goes
    through a Redis channel and each instance delivers to its own sockets.
    """

    def __init__(self):
        self.active_connections: Dict[str, WebSocket] = {}
        self.rooms: Dict[str, Set[str]] = {}
        self.redis: Optional[redis.Redis] = None
        self.pubsub_task: Optional[asyncio.Task] = None

    async def ensure_redis(self):
        if self.redis or not settings.REDIS_URL:
            return
        try:
            self.redis = redis.from_url(settings.REDIS_URL, decode_responses=True)
            await self.redis.ping()
            self.pubsub_task = asyncio.create_task(self._listen_to_redis())
            logger.info("Connected to Redis for Chat Pub/Sub")
        except Exception as e:
            logger.warning(f"Failed to connect to Redis: {e}. Falling back to local-only chat.")
            self.redis = None

    async def _listen_to_redis(self):
        ps = self.redis.pubsub()
        await ps.subscribe(CHANNEL)
        try:
            async for message in ps.listen():
                if message["type"] == "message":
                    envelope = json.loads(message["data"])
                    await self._deliver_local(
                        envelope["event"], envelope["data"], envelope.get("room"), envelope.get("skip_sid")
                    )
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Redis PubSub Error: {e}", exc_info=True)
        finally:
            await ps.unsubscribe(CHANNEL)

    async def close(self):
        if self.pubsub_task:
            self.pubsub_task.cancel()
            try:
                await self.pubsub_task
            except asyncio.CancelledError:
                pass
            self.pubsub_task = None
        if self.redis:
            await self.redis.aclose()
            self.redis = None
        self.active_connections.clear()
        self.rooms.clear()

    # ---- connections and rooms ----

    async def connect(self, websocket: WebSocket) -> str:
        await websocket.accept()
        sid = uuid.uuid4().hex
        self.active_connections[sid] = websocket
        await self.ensure_redis()
        return sid

    def disconnect(self, sid: str):
        self.active_connections.pop(sid, None)
        for members in self.rooms.values():
            members.discard(sid)
        self.rooms = {room: members for room, members in self.rooms.items() if members}

    def join(self, sid: str, room: str):
        self.rooms.setdefault(room, set()).add(sid)

    def leave(self, sid: str, room: str):
        members = self.rooms.get(room)
        if members is None:
            return
        members.discard(sid)
        if not members:
            del self.rooms[room]

    def in_room(self, sid: str, room: str) -> bool:
        return sid in self.rooms.get(room, set())

    # ---- sending ----

    async def send_to(self, sid: str, event: str, data):
        """Emit to one socket of this process only."""
        websocket = self.active_connections.get(sid)
        if websocket is None:
            return
        await self._send(sid, websocket, {"event": event, "data": jsonable_encoder(data)})

    async def emit(self, event: str, data, room: Optional[str] = None, skip_sid: Optional[str] = None):
        """
        Broadcast to a room, or to every socket when ``room`` is None.
        ``skip_sid`` excludes the originating socket.
        """
        payload = jsonable_encoder(data)
        if self.redis:
            envelope = {"event": event, "data": payload, "room": room, "skip_sid": skip_sid}
            await self.redis.publish(CHANNEL, json.dumps(envelope))
        else:
            await self._deliver_local(event, payload, room, skip_sid)

    async def _deliver_local(self, event: str, payload, room: Optional[str], skip_sid: Optional[str]):
        if room is None:
            targets = list(self.active_connections.keys())
        else:
            targets = list(self.rooms.get(room, set()))

        message = {"event": event, "data": payload}
        for sid in targets:
            if sid == skip_sid:
                continue
            websocket = self.active_connections.get(sid)
            if websocket is not None:
                await self._send(sid, websocket, message)

    async def _send(self, sid: str, websocket: WebSocket, message: dict):
        try:
            await websocket.send_json(message)
        except Exception as e:
            # Not retried; the socket's own loop cleans it up on disconnect
            logger.error(f"Send Error to socket {sid}: {e}")


manager = ConnectionManager()
