"""
Pytest configuration and common fixtures for kvgate tests.

Facade semantics run against fakeredis; lifecycle and failure paths use a
mocked redis-py client so that transport errors can be scripted.
"""

from collections.abc import AsyncIterator, Callable
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from fakeredis import FakeAsyncRedis, FakeServer

from kvgate.persistence.redis.config import ConnectionConfig
from kvgate.persistence.redis.ops import RedisCommands
from kvgate.persistence.redis.redis_manager import RedisManager


def fast_retry(attempt: int) -> int:
    """Retry every millisecond, forever."""
    return 1


def stop_after(attempts: int) -> Callable[[int], int | None]:
    """Strategy that gives up once `attempts` attempts have failed."""
    return lambda attempt: None if attempt >= attempts else 1


def make_config(**overrides) -> ConnectionConfig:
    options = {
        "enable_ready_check": False,
        "retry_strategy": fast_retry,
    }
    options.update(overrides)
    return ConnectionConfig(**options)


@pytest.fixture(name="make_config")
def make_config_fixture():
    """Build a ConnectionConfig with test-friendly defaults."""
    return make_config


@pytest.fixture(name="stop_after")
def stop_after_fixture():
    return stop_after


@pytest.fixture
def fake_server() -> FakeServer:
    return FakeServer()


@pytest.fixture
def fake_client_factory(fake_server: FakeServer):
    """Client factory producing fakeredis clients bound to one in-memory server."""

    def factory(config: ConnectionConfig) -> FakeAsyncRedis:
        return FakeAsyncRedis(server=fake_server, decode_responses=True)

    return factory


@pytest.fixture
def mock_redis() -> MagicMock:
    """Mock redis-py client; ping succeeds until a test scripts otherwise."""
    mock = MagicMock()
    mock.ping = AsyncMock(return_value=True)
    mock.info = AsyncMock(return_value={"loading": 0})
    mock.get = AsyncMock(return_value=None)
    mock.execute_command = AsyncMock(return_value=None)
    mock.aclose = AsyncMock()
    return mock


@pytest.fixture
def mock_client_factory(mock_redis: MagicMock):
    return lambda config: mock_redis


@pytest_asyncio.fixture
async def manager(fake_client_factory) -> AsyncIterator[RedisManager]:
    """Activated manager over fakeredis."""
    redis_manager = RedisManager(client_factory=fake_client_factory)
    redis_manager.initialize(make_config())
    await redis_manager.activate()
    yield redis_manager
    await redis_manager.deactivate()


@pytest_asyncio.fixture
async def prefixed_manager(fake_client_factory) -> AsyncIterator[RedisManager]:
    redis_manager = RedisManager(client_factory=fake_client_factory)
    redis_manager.initialize(make_config(key_prefix="app:"))
    await redis_manager.activate()
    yield redis_manager
    await redis_manager.deactivate()


@pytest.fixture
def commands(manager: RedisManager) -> RedisCommands:
    return RedisCommands(manager)


@pytest.fixture
def raw_client(fake_server: FakeServer) -> FakeAsyncRedis:
    """Unprefixed client on the same fake server, for inspecting stored keys."""
    return FakeAsyncRedis(server=fake_server, decode_responses=True)


# Environment setup for tests
@pytest.fixture(autouse=True)
def setup_test_env(monkeypatch):
    """Keep tests independent of a developer's .env / shell."""
    for name in (
        "REDIS_HOST",
        "REDIS_PORT",
        "REDIS_PASSWORD",
        "REDIS_DB",
        "REDIS_KEY_PREFIX",
        "REDIS_RETRY_MAX_ATTEMPTS",
        "REDIS_MAX_RETRIES_PER_REQUEST",
        "REDIS_ENABLE_OFFLINE_QUEUE",
        "API_PREFIX",
        "CORS_ORIGINS",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("ENVIRONMENT", "PROD")
    monkeypatch.setenv("LOG_LEVEL", "DEBUG")
    monkeypatch.setenv("REDIS_ENABLE_READY_CHECK", "false")
    monkeypatch.setenv("REDIS_RETRY_BASE_DELAY_MS", "1")
