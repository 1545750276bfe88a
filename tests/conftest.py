"""Shared test fixtures for backend tests."""

import json
import re
from unittest.mock import patch

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, create_engine

from chat_relay.core.config import settings
from chat_relay.core.rate_limit import RateLimiter
from chat_relay.services.llm import ProviderName, ProviderRegistry, get_provider_registry
from chat_relay.services.llm.openai import OpenAIProvider
from chat_relay.services.store import ConversationStore, get_conversation_store

UPSTREAM_BASE_URL = "https://upstream.test/v1"

# In-memory SQLite with StaticPool so all connections (including threads) share one DB
test_engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


def delta_line(content: str) -> str:
    return "data: " + json.dumps({"choices": [{"delta": {"content": content}}]})


def parse_sse(body: str) -> list[tuple[str, str]]:
    """Split an event-stream body into (event, data) pairs.

    CRLF, lone CR and LF all end a line, and a blank line dispatches the event.
    """
    events = []
    name, data_lines = "message", []
    for line in re.split(r"\r\n|\r|\n", body):
        if not line:
            if data_lines:
                events.append((name, "\n".join(data_lines)))
            name, data_lines = "message", []
        elif line.startswith("event:"):
            name = line[len("event:"):].strip()
        elif line.startswith("data:"):
            value = line[len("data:"):]
            data_lines.append(value[1:] if value.startswith(" ") else value)
    return events


class FakeUpstream:
    """Canned OpenAI-style streaming endpoint served through httpx.MockTransport."""

    def __init__(self):
        self.status_code = 200
        self.lines: list[str] = []
        self.fail_after: int | None = None
        self.requests: list[httpx.Request] = []

    def stream(self, *contents: str, done: bool = True) -> None:
        self.lines = [delta_line(c) for c in contents]
        if done:
            self.lines.append("data: [DONE]")

    async def _body(self):
        for i, line in enumerate(self.lines):
            if self.fail_after is not None and i == self.fail_after:
                raise httpx.ReadError("connection reset by peer")
            yield (line + "\n").encode()

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.status_code != 200:
            return httpx.Response(self.status_code, json={"error": {"message": "invalid api key"}})
        return httpx.Response(
            200,
            headers={"content-type": "text/event-stream"},
            content=self._body(),
        )

    def request_json(self, index: int = -1) -> dict:
        return json.loads(self.requests[index].content)


@pytest.fixture(autouse=True)
def setup_test_db():
    """Create all tables before each test, drop after."""
    import chat_relay.models.conversation  # noqa: F401 - register models
    SQLModel.metadata.create_all(test_engine)
    yield
    SQLModel.metadata.drop_all(test_engine)


@pytest.fixture
def store():
    return ConversationStore(test_engine)


@pytest.fixture
def upstream():
    return FakeUpstream()


@pytest.fixture
def openai_provider(upstream):
    return OpenAIProvider(
        api_key="test-key",
        base_url=UPSTREAM_BASE_URL,
        transport=httpx.MockTransport(upstream.handler),
    )


@pytest.fixture
def client(store, openai_provider, monkeypatch):
    """FastAPI TestClient with the store and upstream provider swapped out."""
    monkeypatch.setattr(settings, "server_api_key", "")

    registry = ProviderRegistry()
    registry.register(ProviderName.OPENAI, openai_provider)

    with patch("chat_relay.core.database.engine", test_engine):
        from chat_relay.main import app

        app.dependency_overrides[get_conversation_store] = lambda: store
        app.dependency_overrides[get_provider_registry] = lambda: registry
        app.state.rate_limiter = RateLimiter(max_requests=1000, window=60.0)

        with TestClient(app) as c:
            yield c

        app.dependency_overrides.clear()
