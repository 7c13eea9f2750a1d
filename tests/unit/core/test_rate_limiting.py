"""Tests for rate limiting functionality."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from src.api.core.decorators.rate_limit import (
    create_rate_limit_key,
    rate_limit_headers,
    retry_message,
)
from src.api.core.models.rate_limit import (
    RATE_LIMIT_POLICIES,
    ClientIdentifier,
    RateLimitClientType,
    RateLimitConfig,
    RateLimitPolicy,
)
from src.modules.auth.rate_limiting import RateLimiter


class FakeClock:
    def __init__(self, now: int = 1_700_000_000):
        self.now = now

    def __call__(self) -> float:
        return float(self.now)


@pytest.fixture
def clock(monkeypatch) -> FakeClock:
    clock = FakeClock()
    monkeypatch.setattr("src.modules.auth.rate_limiting.time.time", clock)
    return clock


def _identifier(policy=RateLimitPolicy.AUTH, client_id="203.0.113.7"):
    return ClientIdentifier(
        policy=policy, client_type=RateLimitClientType.IP, client_id=client_id
    )


def test_client_identifier_creation_user():
    """Authenticated requests are limited per user."""
    mock_request = MagicMock()
    mock_request.state.user.id = "user-123"

    result = create_rate_limit_key(mock_request, RateLimitPolicy.BILLING)

    assert result.client_type == RateLimitClientType.USER
    assert result.client_id == "user-123"
    assert result.to_cache_key() == "rate_limit:billing:user:user-123"


def test_client_identifier_creation_ip_fallback():
    """Anonymous requests are limited per client IP."""
    mock_request = MagicMock()
    mock_request.state.user = None

    with patch(
        "src.api.core.decorators.rate_limit.get_client_ip", return_value="127.0.0.1"
    ):
        result = create_rate_limit_key(mock_request, RateLimitPolicy.AUTH)

    assert result.client_type == RateLimitClientType.IP
    assert result.client_id == "127.0.0.1"
    assert result.to_cache_key() == "rate_limit:auth:ip:127.0.0.1"


@pytest.mark.parametrize(
    "policy,limit,window_seconds",
    [
        (RateLimitPolicy.AUTH, 5, 3600),
        (RateLimitPolicy.PASSWORD_RESET, 3, 3600),
        (RateLimitPolicy.TWO_FACTOR, 5, 900),
        (RateLimitPolicy.BILLING, 10, 60),
        (RateLimitPolicy.WEBHOOK, 120, 60),
        (RateLimitPolicy.ADMIN, 60, 60),
    ],
)
def test_policy_table(policy, limit, window_seconds):
    assert RATE_LIMIT_POLICIES[policy] == RateLimitConfig(
        limit=limit, window_seconds=window_seconds
    )


@pytest.mark.asyncio
async def test_sixth_auth_request_in_window_is_rejected(redis_client, clock):
    limiter = RateLimiter(redis_client)
    identifier = _identifier()

    results = []
    for _ in range(6):
        results.append(await limiter.check_rate_limit(identifier))
        clock.now += 1

    assert [r.success for r in results] == [True] * 5 + [False]
    assert [r.remaining for r in results[:5]] == [4, 3, 2, 1, 0]

    rejected = results[-1]
    assert rejected.remaining == 0
    assert rejected.reset == 1_700_000_000 + 3600
    assert rejected.retry_after == 3600 - 5


@pytest.mark.asyncio
async def test_request_succeeds_after_window_passes(redis_client, clock):
    limiter = RateLimiter(redis_client)
    identifier = _identifier()

    for _ in range(5):
        await limiter.check_rate_limit(identifier)
    assert (await limiter.check_rate_limit(identifier)).success is False

    clock.now += 3601

    assert (await limiter.check_rate_limit(identifier)).success is True


@pytest.mark.asyncio
async def test_rejected_requests_do_not_extend_the_window(redis_client, clock):
    limiter = RateLimiter(redis_client)
    identifier = _identifier(RateLimitPolicy.PASSWORD_RESET)

    for _ in range(3):
        await limiter.check_rate_limit(identifier)
    for _ in range(10):
        assert (await limiter.check_rate_limit(identifier)).success is False

    assert await limiter.get_remaining(identifier) == 0
    assert await redis_client.zcard(identifier.to_cache_key()) == 3


@pytest.mark.asyncio
async def test_windows_are_per_policy_and_client(redis_client, clock):
    limiter = RateLimiter(redis_client)

    for _ in range(5):
        await limiter.check_rate_limit(_identifier(client_id="198.51.100.1"))

    assert (await limiter.check_rate_limit(_identifier(client_id="198.51.100.2"))).success
    assert (
        await limiter.check_rate_limit(
            _identifier(RateLimitPolicy.BILLING, client_id="198.51.100.1")
        )
    ).success


@pytest.mark.asyncio
async def test_limiter_fails_open_when_redis_is_down():
    broken = MagicMock()
    broken.pipeline.return_value.execute = AsyncMock(
        side_effect=ConnectionError("redis down")
    )

    result = await RateLimiter(broken).check_rate_limit(_identifier())

    assert result.success is True
    assert result.remaining == result.limit


def test_retry_message_and_headers():
    assert retry_message(59) == "Too many requests. Please try again in 1 minute."
    assert retry_message(3595) == "Too many requests. Please try again in 60 minutes."

    result = MagicMock(success=False, limit=5, remaining=0, reset=123, retry_after=60)
    assert rate_limit_headers(result) == {
        "X-RateLimit-Limit": "5",
        "X-RateLimit-Remaining": "0",
        "X-RateLimit-Reset": "123",
        "Retry-After": "60",
    }
