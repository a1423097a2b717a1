import os

os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ["REDIS_URL"] = ""

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from mongomock_motor import AsyncMongoMockClient

from pulse_chat_app.main import app
from pulse_chat_app.chating.models.message_model import MessageModel, MessageType


@pytest.fixture
def client():
    app.state.mongo_client = AsyncMongoMockClient(uuidRepresentation="standard")
    with TestClient(app) as test_client:
        yield test_client
    del app.state.mongo_client


@pytest.fixture
def register(client):
    """Create a user and return (token, user_id, auth headers)."""

    def _register(username, email=None, password="secret123", profile=None):
        body = {
            "username": username,
            "email": email or f"{username}@example.com",
            "password": password,
        }
        if profile is not None:
            body["profile"] = profile
        res = client.post("/api/auth/register", json=body)
        assert res.status_code == 201, res.text
        data = res.json()
        return data["token"], data["user"]["id"], {"Authorization": f"Bearer {data['token']}"}

    return _register


@pytest.fixture
def seed_messages(client):
    """Insert messages straight into the database on the app's event loop."""

    def _seed(chat_id, sender_id, contents, start=None, step=timedelta(seconds=1)):
        start = start or datetime.now(timezone.utc) - step * len(contents)

        async def _insert():
            created = []
            for i, content in enumerate(contents):
                message = MessageModel(
                    sender_id=sender_id,
                    chat_id=chat_id,
                    content=content,
                    message_type=MessageType.TEXT,
                    timestamp=start + step * i,
                )
                await message.insert()
                created.append(message)
            return created

        return client.portal.call(_insert)

    return _seed


@pytest.fixture
def db_call(client):
    """Run a coroutine function against the database on the app's event loop."""

    def _call(fn, *args):
        return client.portal.call(fn, *args)

    return _call
