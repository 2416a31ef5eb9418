"""
Shared test fixtures and configuration for recipe assistant tests.

Provides an in-memory thread store, fake graph driver and scripted model
client so the agent loop and HTTP layer run without external services.
"""

import os

# Set test environment before importing app
os.environ.update(
    {
        "APP_ENV": "test",
        "LOG_LEVEL": "DEBUG",
        "API_KEY": "test-api-key-that-is-at-least-32-characters",
        "ANTHROPIC_API_KEY": "sk-ant-REDACTED",
        "DATABASE_URL": "sqlite+aiosqlite:///:memory:",
        "NEO4J_URI": "neo4j://localhost:7687",
        "NEO4J_PASSWORD": "test-password",
        "AGENT_MAX_ITERATIONS": "10",
    }
)

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from recipe_assistant.app import app
from recipe_assistant.db.models import Base
from recipe_assistant.db.repositories import MessagesRepository, ThreadsRepository
from recipe_assistant.services.agent_loop import AgentLoopController
from recipe_assistant.services.conversation_service import ConversationService
from recipe_assistant.services.graph_query import GraphQueryExecutor
from recipe_assistant.services.tool_registry import build_query_registry

from fakes import ScriptedModelClient, fake_driver

API_HEADERS = {"X-API-Key": os.environ["API_KEY"]}


@pytest.fixture
async def session_factory():
    """Session factory over a fresh in-memory SQLite database."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest.fixture
def threads_repo(session_factory):
    return ThreadsRepository(session_factory)


@pytest.fixture
def messages_repo(session_factory):
    return MessagesRepository(session_factory)


@pytest.fixture
def seasonal_rows():
    """Three rows as returned for a seasonal recipe query."""
    return [
        {"name": "Pumpkin Soup", "season": "Autumn", "cooking_time": 40},
        {"name": "Asparagus Risotto", "season": "Spring", "cooking_time": 35},
        {"name": "Watermelon Salad", "season": "Summer", "cooking_time": None},
    ]


@pytest.fixture
def graph_driver(seasonal_rows):
    return fake_driver(seasonal_rows)


@pytest.fixture
def graph_executor(graph_driver):
    return GraphQueryExecutor(graph_driver, database="recipes")


@pytest.fixture
def make_service(threads_repo, messages_repo, graph_executor):
    """Build a ConversationService around a scripted model."""

    def _make(responses, max_iterations=10, messages=None):
        model_client = ScriptedModelClient(responses)
        loop = AgentLoopController(
            model_client=model_client,
            registry=build_query_registry(graph_executor),
            system_prompt="You answer recipe questions.",
            max_iterations=max_iterations,
        )
        service = ConversationService(
            threads=threads_repo,
            messages=messages or messages_repo,
            agent_loop=loop,
        )
        return service, model_client

    return _make


@pytest.fixture
def mock_conversation_service():
    """AsyncMock conversation service injected into the app."""
    service = AsyncMock()
    service.threads = AsyncMock()
    service.messages = AsyncMock()
    return service


@pytest.fixture
def test_client(mock_conversation_service):
    """
    FastAPI TestClient with a mocked conversation service.

    Services are placed on app.state before startup so the lifespan does not
    build real ones.
    """
    app.state.conversation_service = mock_conversation_service
    app.state.graph_executor = MagicMock()
    with TestClient(app) as client:
        client.headers.update(API_HEADERS)
        yield client
    app.state.conversation_service = None
    app.state.graph_executor = None


@pytest.fixture
async def async_client():
    """Async HTTP client; tests place their own services on app.state."""
    transport = ASGITransport(app=app)
    async with AsyncClient(
        transport=transport, base_url="http://test", headers=API_HEADERS
    ) as client:
        yield client
    app.state.conversation_service = None
    app.state.graph_executor = None
