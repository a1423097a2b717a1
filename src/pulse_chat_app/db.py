from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from motor.motor_asyncio import AsyncIOMotorClient
from beanie import init_beanie
from pulse_chat_app.core.config.settings import settings
from pulse_chat_app.users.models.user_models import UserModel
from pulse_chat_app.chating.models.chat_model import ChatModel
from pulse_chat_app.chating.models.message_model import MessageModel
from pulse_chat_app.chating.realtime.relay import start_relay, stop_relay

logger = logging.getLogger(__name__)


MODELS = [
    UserModel,
    ChatModel,
    MessageModel,
]


async def init_db(client) -> None:
    await init_beanie(
        database=client[settings.DATABASE_NAME],
        document_models=MODELS,
    )
    logger.info(f"Connected to MongoDB: {settings.DATABASE_NAME}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # A client may be provided up front (tests use an in-memory one)
    client = getattr(app.state, "mongo_client", None)
    owns_client = client is None
    if owns_client:
        client = AsyncIOMotorClient(settings.MONGODB_URL, uuidRepresentation="standard")

    await init_db(client)
    start_relay()

    yield

    await stop_relay()
    if owns_client:
        client.close()
        logger.info("MongoDB connection closed.")
