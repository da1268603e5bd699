import asyncio
from typing import List, Optional

import pytest
from fastapi.testclient import TestClient

from supportchat.config import Settings
from supportchat.database.db import Database
from supportchat.main import create_app
from supportchat.services.chat import ChatService
from supportchat.services.llm.base import BaseLLM


class FakeLLM(BaseLLM):
    """Records prompts and answers with a canned reply (or raises)."""

    provider = "fake"
    default_model = "fake-model"

    def __init__(self, reply: str = "Our return policy is 30 days.", error: Optional[Exception] = None):
        super().__init__()
        self.reply = reply
        self.error = error
        self.prompts: List[str] = []

    async def complete(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.reply


def run(coro):
    return asyncio.run(coro)


@pytest.fixture
def store():
    db = Database("sqlite://")
    yield db
    db.close()


@pytest.fixture
def llm():
    return FakeLLM()


@pytest.fixture
def service(store, llm):
    return ChatService(store, llm)


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        database_url="sqlite://",
        llm_provider="anthropic",
        llm_api_key="test-key",
        rate_limit_window_ms=60000,
        rate_limit_max_requests=100,
        cors_origin="*",
        log_level="WARNING",
    )


@pytest.fixture
def app(settings, store, llm):
    return create_app(settings=settings, store=store, llm=llm)


@pytest.fixture
def client(app):
    return TestClient(app)
