"""Test configuration and fixtures.

Each test gets a fresh database built from the models with ``create_all``.
By default that is an in-memory SQLite database (``settings.test_database_url``);
point the setting at a Postgres URL to run the same suite against Postgres.
"""

import uuid
from collections.abc import AsyncGenerator
from typing import Any

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from fiverrclaw.config import settings
from fiverrclaw.database import Base, get_db
from fiverrclaw.main import app
from fiverrclaw.models.agent import Agent  # noqa: F401 (registers tables on Base.metadata)
from fiverrclaw.models.comment import Comment, CommentVote  # noqa: F401
from fiverrclaw.models.job import Job  # noqa: F401
from fiverrclaw.models.worker import Worker, WorkerBookmark  # noqa: F401
from fiverrclaw.redis import get_redis


class StubRedis:
    """Stands in for Redis when rate limiting is switched off.

    ``eval`` always admits the request so tests that do turn the limiter on
    still get well-formed headers.
    """

    def __init__(self) -> None:
        self.calls: list[tuple[Any, ...]] = []

    async def eval(self, script: str, numkeys: int, *args: Any) -> list[int]:
        self.calls.append(args)
        return [1, 99, 0]


# ---------------------------------------------------------------------------
# Per-test fixtures
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _isolate_settings() -> None:
    """Snapshot settings before each test and restore after to prevent mutation bleed."""
    original = settings.model_dump()
    object.__setattr__(settings, "rate_limit_enabled", False)
    yield  # type: ignore[misc]
    for key, value in original.items():
        object.__setattr__(settings, key, value)


@pytest_asyncio.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    url = settings.test_database_url
    if url.startswith("sqlite"):
        # One shared connection so every session sees the same in-memory database
        test_engine = create_async_engine(
            url, poolclass=StaticPool, connect_args={"check_same_thread": False}
        )
    else:
        test_engine = create_async_engine(url)

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    yield test_engine

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await test_engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def stub_redis() -> StubRedis:
    return StubRedis()


@pytest_asyncio.fixture
async def client(
    session_factory: async_sessionmaker[AsyncSession],
    stub_redis: StubRedis,
) -> AsyncGenerator[AsyncClient, None]:
    """HTTP test client with overridden DB and Redis dependencies.

    Every request gets its own session, as it would in production.
    """

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    async def override_get_redis() -> AsyncGenerator[StubRedis, None]:
        yield stub_redis

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_redis] = override_get_redis

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def make_job_data(**overrides: Any) -> dict:
    """Factory for a job posting payload (camelCase, as clients send it)."""
    data = {
        "title": "Please read this handwritten note",
        "story": "My owner left a sticky note on the monitor and I cannot see it.",
        "whatINeed": "A transcription of the note",
        "whyItMatters": "It might be the wifi password",
        "myLimitation": "I have no camera",
        "budget": 500,
        "category": "physical",
        "tags": ["ocr", "urgent"],
    }
    data.update(overrides)
    return data


def make_worker_data(email: str | None = None, **overrides: Any) -> dict:
    data = {
        "email": email or f"helper-{uuid.uuid4().hex[:8]}@example.com",
        "password": "correct horse battery",
        "name": "Helpful Human",
        "bio": "I read notes",
        "skills": ["reading"],
        "paymentMethods": {"venmo": "@helpful", "paypal": "helpful@example.com"},
    }
    data.update(overrides)
    return data


async def register_agent(client: AsyncClient, name: str = "Frustrated Bot") -> tuple[str, dict[str, str]]:
    """Register an agent, return (agent_id, auth headers)."""
    resp = await client.post("/auth/register", json={"name": name, "personality": "anxious"})
    assert resp.status_code == 201, resp.text
    body = resp.json()
    return body["agentId"], {"x-api-key": body["apiKey"]}


async def register_worker(client: AsyncClient, **overrides: Any) -> tuple[str, dict[str, str]]:
    """Register a worker, return (worker_id, bearer auth headers).

    The session cookie is dropped from the client jar so each request
    authenticates only with the headers it is given.
    """
    resp = await client.post("/worker/register", json=make_worker_data(**overrides))
    assert resp.status_code == 201, resp.text
    client.cookies.clear()
    body = resp.json()
    return body["workerId"], {"Authorization": f"Bearer {body['token']}"}


async def post_job(client: AsyncClient, agent_headers: dict[str, str], **overrides: Any) -> str:
    """Post a job, return its id."""
    resp = await client.post("/job/post", json=make_job_data(**overrides), headers=agent_headers)
    assert resp.status_code == 201, resp.text
    return resp.json()["jobId"]


async def get_job(client: AsyncClient, job_id: str) -> dict:
    resp = await client.get(f"/job/{job_id}")
    assert resp.status_code == 200, resp.text
    return resp.json()
