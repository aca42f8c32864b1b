import os
from types import SimpleNamespace
from typing import Any, List, Optional

# Settings are read once at import time, so the environment goes first.
os.environ.setdefault("OPENAI_API_KEY", "sk-test-key")
os.environ.setdefault("OPENAI_MODEL", "test-model")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("JSON_LOGS", "false")

import pytest
from dependency_injector import providers
from httpx import ASGITransport, AsyncClient

from api.features.chat.client import ChatCompletionClient
from api.features.chat.exceptions import UpstreamUnavailableError
from api.features.conversation.service import ConversationService
from api.shared.entities.registry import BaseEntity
from infra.resources import DatabaseResource

TEST_MODEL = "test-model"


def make_completion(content: Optional[str] = "Hello from the assistant"):
    """Completion object in the OpenAI response shape."""
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(role="assistant", content=content))]
    )


class FakeChatClient(ChatCompletionClient):
    """Records requests and answers with canned completions."""

    def __init__(self, reply: Any = "Hello from the assistant"):
        self.reply = reply
        self.calls: List[dict] = []

    async def create_chat_completion(self, model, messages):
        self.calls.append({"model": model, "messages": messages})
        if isinstance(self.reply, BaseException):
            raise self.reply
        if isinstance(self.reply, str):
            return make_completion(self.reply)
        return self.reply


@pytest.fixture
async def db_resource(tmp_path):
    db = DatabaseResource(database_url=f"sqlite+aiosqlite:///{tmp_path / 'chatbot.db'}")
    await db.init()
    async with db.engine.begin() as conn:
        await conn.run_sync(BaseEntity.metadata.create_all)
    try:
        yield db
    finally:
        await db.shutdown()


@pytest.fixture
async def db_session(db_resource):
    session = db_resource.get_session()
    try:
        yield session
    finally:
        await session.close()


@pytest.fixture
def conversation_service():
    return ConversationService()


@pytest.fixture
def fake_chat_client():
    return FakeChatClient()


@pytest.fixture
def failing_chat_client():
    return FakeChatClient(reply=UpstreamUnavailableError("Connection refused"))


@pytest.fixture
async def client(db_resource, fake_chat_client):
    from api.main import app

    app.container.infrastructure.database.override(providers.Object(db_resource))
    app.container.services.chat_client.override(providers.Object(fake_chat_client))
    try:
        async with AsyncClient(
            transport=ASGITransport(app=app, raise_app_exceptions=False),
            base_url="http://test",
        ) as ac:
            yield ac
    finally:
        app.container.infrastructure.database.reset_override()
        app.container.services.chat_client.reset_override()
