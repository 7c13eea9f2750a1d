"""Global test configuration and fixtures for the Craft billing API."""

import base64
from collections.abc import AsyncGenerator
from typing import Callable

import fakeredis
import pytest
import pytest_asyncio
from asgi_lifespan import LifespanManager
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from jose import jwt
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from src.api.core.constants import JWT_ALGORITHM
from src.database.models import Base, User, UserRole
from src.redis.client import get_redis_client
from tests.factories import (
    AICreditUsageFactory,
    PlanFactory,
    SubscriptionFactory,
    UserFactory,
    WebhookEventFactory,
)

TEST_BASE_URL = "http://test-craft-api"
TEST_JWT_SECRET = "test-jwt-secret-key-for-testing-only"
TEST_CRON_SECRET = "test-cron-secret"
TEST_POLAR_WEBHOOK_SECRET = (
    "whsec_" + base64.b64encode(b"polar-test-webhook-secret").decode()
)
TEST_RAZORPAY_WEBHOOK_SECRET = "razorpay-test-webhook-secret"
TEST_RAZORPAY_KEY_SECRET = "razorpay-test-key-secret"


@pytest.fixture
def user_factory():
    return UserFactory


@pytest.fixture
def plan_factory():
    return PlanFactory


@pytest.fixture
def subscription_factory():
    return SubscriptionFactory


@pytest.fixture
def webhook_event_factory():
    return WebhookEventFactory


@pytest.fixture
def usage_factory():
    return AICreditUsageFactory


@pytest.fixture(autouse=True)
def test_settings(monkeypatch):
    """Secrets every settings class reads from the environment."""
    monkeypatch.setenv("ENVIRONMENT", "TEST")
    monkeypatch.setenv("AUTH_JWT_SECRET", TEST_JWT_SECRET)
    monkeypatch.setenv("CRON_SECRET", TEST_CRON_SECRET)
    monkeypatch.setenv("POLAR_WEBHOOK_SECRET", TEST_POLAR_WEBHOOK_SECRET)
    monkeypatch.setenv("RAZORPAY_WEBHOOK_SECRET", TEST_RAZORPAY_WEBHOOK_SECRET)
    monkeypatch.setenv("RAZORPAY_KEY_SECRET", TEST_RAZORPAY_KEY_SECRET)


@pytest.fixture(autouse=True)
def disable_external_cache(monkeypatch):
    """Stub cache helpers so tests do not require Redis."""

    async def _noop_get_cache(*_args, **_kwargs):
        return None

    async def _noop_set_cache(*_args, **_kwargs):
        return True

    async def _noop_invalidate(*_args, **_kwargs):
        return 0

    monkeypatch.setattr("src.cache.decorator._get_cache", _noop_get_cache)
    monkeypatch.setattr("src.cache.decorator._set_cache", _noop_set_cache)
    monkeypatch.setattr("src.cache.decorator._invalidate_by_tag", _noop_invalidate)


# Redis


@pytest.fixture
def redis_server() -> fakeredis.FakeServer:
    """One in-memory Redis per test, shared by the async and sync clients."""
    return fakeredis.FakeServer()


@pytest_asyncio.fixture
async def redis_client(redis_server) -> AsyncGenerator[fakeredis.FakeAsyncRedis, None]:
    client = fakeredis.FakeAsyncRedis(server=redis_server, decode_responses=True)
    yield client
    await client.aclose()


@pytest.fixture(autouse=True)
def queue_connection(monkeypatch, redis_server) -> fakeredis.FakeStrictRedis:
    """Point the RQ webhook queue at the in-memory Redis."""
    connection = fakeredis.FakeStrictRedis(server=redis_server)
    monkeypatch.setattr(
        "src.modules.webhooks.queue.get_redis_connection", lambda: connection
    )
    return connection


# Database


@pytest_asyncio.fixture
async def async_engine(tmp_path):
    """A fresh SQLite file per test, so commits and rollbacks are real."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as connection:
        await connection.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(async_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=async_engine, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


# Application


@pytest_asyncio.fixture
async def app(session_factory, redis_client) -> AsyncGenerator[FastAPI, None]:
    """FastAPI application wired to the test database and Redis."""
    from src.main import app

    async def _test_redis_client():
        return redis_client

    async with LifespanManager(app):
        app.state.session_factory = session_factory
        app.dependency_overrides[get_redis_client] = _test_redis_client
        yield app
        app.dependency_overrides.clear()


# Test Data Fixtures


@pytest_asyncio.fixture
async def test_user(db_session: AsyncSession, user_factory) -> User:
    return await user_factory.create_async(db_session, name="Test User")


@pytest_asyncio.fixture
async def test_admin_user(db_session: AsyncSession, user_factory) -> User:
    return await user_factory.create_async(
        db_session, name="Admin User", role=UserRole.ADMIN
    )


# JWT Token Fixtures


@pytest.fixture
def jwt_token_factory() -> Callable[[str, str], str]:
    """Factory for creating JWT tokens for test users."""

    def create_token(user_id: str, email: str) -> str:
        payload = {
            "sub": user_id,
            "email": email,
            "role": "authenticated",
            "aud": "authenticated",
        }
        return jwt.encode(payload, TEST_JWT_SECRET, algorithm=JWT_ALGORITHM)

    return create_token


@pytest.fixture
def user_token(test_user: User, jwt_token_factory) -> str:
    return jwt_token_factory(str(test_user.id), test_user.email)


@pytest.fixture
def admin_token(test_admin_user: User, jwt_token_factory) -> str:
    return jwt_token_factory(str(test_admin_user.id), test_admin_user.email)


# HTTP Client Fixtures


@pytest_asyncio.fixture
async def public_client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Create HTTP client for testing public endpoints."""
    async with AsyncClient(
        transport=ASGITransport(app=app), base_url=TEST_BASE_URL
    ) as ac:
        yield ac


@pytest_asyncio.fixture
async def authorized_client(
    app: FastAPI, user_token: str
) -> AsyncGenerator[AsyncClient, None]:
    """Create HTTP client with JWT authorization headers."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url=TEST_BASE_URL,
        headers={"Authorization": f"Bearer {user_token}"},
    ) as ac:
        yield ac


@pytest_asyncio.fixture
async def admin_client(
    app: FastAPI, admin_token: str
) -> AsyncGenerator[AsyncClient, None]:
    """Create HTTP client with admin JWT authorization headers."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url=TEST_BASE_URL,
        headers={"Authorization": f"Bearer {admin_token}"},
    ) as ac:
        yield ac


@pytest.fixture
def client_factory(app: FastAPI, jwt_token_factory):
    """Factory for creating HTTP clients with different user contexts."""

    def create_client_for_user(user: User) -> AsyncClient:
        token = jwt_token_factory(str(user.id), user.email)
        return AsyncClient(
            transport=ASGITransport(app=app),
            base_url=TEST_BASE_URL,
            headers={"Authorization": f"Bearer {token}"},
        )

    return create_client_for_user
