"""Global pytest fixtures for testing."""

import contextlib
import json
import os
from collections.abc import AsyncGenerator, Callable
from typing import Any

import dotenv
import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool, StaticPool

from babel_core.config import TranslatorSettings
from babel_database import Base
from babel_database.models import Post, Topic, User

with contextlib.suppress(OSError):
    dotenv.load_dotenv()


class MockArqRedis:
    """Mock ArqRedis for testing."""

    def __init__(self):
        self.enqueued_jobs: list[tuple[str, tuple[Any, ...], dict[str, Any]]] = []
        self.published: list[tuple[str, str]] = []
        self._store: dict[str, Any] = {}
        self._ttl: dict[str, int] = {}

    async def enqueue_job(self, func_name: str, *args: Any, **kwargs: Any) -> None:
        """Mock enqueue_job that records calls without actually queuing."""
        self.enqueued_jobs.append((func_name, args, kwargs))

    async def publish(self, channel: str, message: str) -> int:
        self.published.append((channel, message))
        return 1

    async def get(self, key: str) -> Any:
        return self._store.get(key)

    async def incr(self, key: str) -> int:
        next_count = int(self._store.get(key, 0)) + 1
        self._store[key] = next_count
        return next_count

    async def expire(self, key: str, ttl_seconds: int) -> bool:
        if key not in self._store:
            return False
        self._ttl[key] = ttl_seconds
        return True

    async def ttl(self, key: str) -> int:
        return self._ttl.get(key, -1)

    def pipeline(self, transaction: bool = True) -> "MockRedisPipeline":
        return MockRedisPipeline(self)

    def reset(self) -> None:
        """Reset all in-memory redis state."""
        self.enqueued_jobs.clear()
        self.published.clear()
        self._store.clear()
        self._ttl.clear()

    def seed(self, key: str, value: Any, ttl_seconds: int | None = None) -> None:
        """Seed redis key/value directly for tests."""
        self._store[key] = value
        if ttl_seconds is not None:
            self._ttl[key] = ttl_seconds

    def messages(self, channel: str) -> list[dict[str, Any]]:
        """Decoded payloads published on one channel, in order."""
        return [json.loads(message) for ch, message in self.published if ch == channel]


class MockRedisPipeline:
    """Minimal async Redis pipeline used by the rate limiter."""

    def __init__(self, redis: MockArqRedis):
        self._redis = redis
        self._commands: list[tuple[str, tuple[Any, ...]]] = []

    async def __aenter__(self) -> "MockRedisPipeline":
        return self

    async def __aexit__(self, *exc: Any) -> None:
        self._commands.clear()

    def incr(self, key: str) -> "MockRedisPipeline":
        self._commands.append(("incr", (key,)))
        return self

    def expire(self, key: str, ttl_seconds: int) -> "MockRedisPipeline":
        self._commands.append(("expire", (key, ttl_seconds)))
        return self

    async def execute(self) -> list[Any]:
        results: list[Any] = []
        for command_name, args in self._commands:
            method = getattr(self._redis, command_name)
            results.append(await method(*args))
        self._commands.clear()
        return results


# In-memory SQLite unless a dedicated test database is configured
TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL", "sqlite+aiosqlite:///:memory:")

# Safety check: a server database must be a test database
if not TEST_DATABASE_URL.startswith("sqlite") and (
    "_test" not in TEST_DATABASE_URL and "/test" not in TEST_DATABASE_URL
):
    raise RuntimeError(
        f"Safety check failed: TEST_DATABASE_URL must point to a test database "
        f"(name should contain 'test'). Current: {TEST_DATABASE_URL}"
    )


@pytest_asyncio.fixture
async def test_engine() -> AsyncGenerator[AsyncEngine, None]:
    """Create test database engine with a fresh schema."""
    if TEST_DATABASE_URL.startswith("sqlite"):
        engine = create_async_engine(
            TEST_DATABASE_URL,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,  # One shared in-memory database
        )
    else:
        engine = create_async_engine(TEST_DATABASE_URL, poolclass=NullPool)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(
    test_engine: AsyncEngine, monkeypatch: pytest.MonkeyPatch
) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the test engine, also used by get_session_context."""
    from babel_database import session as session_module

    factory = async_sessionmaker(
        bind=test_engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
    )
    monkeypatch.setattr(session_module, "_engine", test_engine)
    monkeypatch.setattr(session_module, "_session_factory", factory)
    return factory


@pytest_asyncio.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """Create a fresh database session for each test."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def mock_redis() -> MockArqRedis:
    """Fresh in-memory redis for each test."""
    return MockArqRedis()


@pytest.fixture
def settings() -> TranslatorSettings:
    """Translator settings with a configured OpenAI preset."""
    return TranslatorSettings(
        _env_file=None,
        enabled=True,
        preset_model="gpt-4o-mini",
        openai_api_key="sk-test",
        rate_limit_per_minute=60,
        translate_title=True,
        auto_translate_languages="",
    )


@pytest.fixture
def chat_completion() -> Callable[..., dict[str, Any]]:
    """Build a chat-completion response body."""

    def _build(content: str, model: str = "gpt-4o-mini", total_tokens: int = 42) -> dict[str, Any]:
        return {
            "id": "chatcmpl-test",
            "model": model,
            "choices": [{"index": 0, "message": {"role": "assistant", "content": content}}],
            "usage": {"total_tokens": total_tokens},
        }

    return _build


class ProviderStub:
    """Records provider requests and replies from a queue of responses."""

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.responses: list[httpx.Response | Exception] = []
        self.before_response: Callable[[httpx.Request], None] | None = None

    def reply(self, status_code: int = 200, **kwargs: Any) -> "ProviderStub":
        self.responses.append(httpx.Response(status_code, **kwargs))
        return self

    def fail(self, error: Exception) -> "ProviderStub":
        self.responses.append(error)
        return self

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.before_response is not None:
            self.before_response(request)
        outcome = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    def request_bodies(self) -> list[dict[str, Any]]:
        return [json.loads(request.content) for request in self.requests]


@pytest.fixture
def provider() -> ProviderStub:
    """Scripted provider endpoint."""
    return ProviderStub()


@pytest_asyncio.fixture
async def http_client(provider: ProviderStub) -> AsyncGenerator[httpx.AsyncClient, None]:
    """HTTP client whose requests are answered by the provider stub."""
    async with httpx.AsyncClient(transport=httpx.MockTransport(provider.handler), timeout=5) as client:
        yield client


@pytest_asyncio.fixture
async def test_user(db_session: AsyncSession) -> User:
    """Create a test user."""
    user = User(username="reader")
    db_session.add(user)
    await db_session.commit()
    return user


@pytest_asyncio.fixture
async def make_post(db_session: AsyncSession, test_user: User) -> Callable[..., Any]:
    """Create a topic (when needed) and a post in it."""

    async def _make(
        cooked: str = "<p>你好，世界</p>",
        raw: str | None = None,
        title: str | None = "测试主题",
        post_number: int = 1,
        topic: Topic | None = None,
        **fields: Any,
    ) -> Post:
        if topic is None:
            topic = Topic(title=title)
            db_session.add(topic)
            await db_session.flush()
        post = Post(
            topic_id=topic.id,
            user_id=test_user.id,
            post_number=post_number,
            raw=raw if raw is not None else cooked,
            cooked=cooked,
            **fields,
        )
        db_session.add(post)
        await db_session.commit()
        return post

    return _make
