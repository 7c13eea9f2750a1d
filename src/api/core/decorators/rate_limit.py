import math
from functools import wraps
from typing import Any, Callable

from fastapi import Request, status
import redis.asyncio as redis

from src.api.core.decorators._common import extract_request_and_redis
from src.api.core.exceptions.base import CraftException
from src.api.core.messages import MessageCode
from src.api.core.models.rate_limit import (
    ClientIdentifier,
    RateLimitClientType,
    RateLimitPolicy,
    RateLimitResult,
)
from src.modules.auth.rate_limiting import RateLimiter
from src.utils.logger import get_client_ip, get_logger


logger = get_logger(__name__)


def create_rate_limit_key(request: Request, policy: RateLimitPolicy) -> ClientIdentifier:
    """The authenticated user when there is one, the client IP otherwise."""
    user = getattr(request.state, "user", None)
    if user is not None and getattr(user, "id", None):
        return ClientIdentifier(
            policy=policy,
            client_type=RateLimitClientType.USER,
            client_id=str(user.id),
        )

    return ClientIdentifier(
        policy=policy,
        client_type=RateLimitClientType.IP,
        client_id=get_client_ip(request),
    )


def rate_limit_headers(result: RateLimitResult) -> dict[str, str]:
    headers = {
        "X-RateLimit-Limit": str(result.limit),
        "X-RateLimit-Remaining": str(result.remaining),
        "X-RateLimit-Reset": str(result.reset),
    }
    if not result.success:
        headers["Retry-After"] = str(result.retry_after)
    return headers


def retry_message(retry_after: int) -> str:
    minutes = max(1, math.ceil(retry_after / 60))
    unit = "minute" if minutes == 1 else "minutes"
    return f"Too many requests. Please try again in {minutes} {unit}."


def rate_limit(policy: RateLimitPolicy):
    """
    Rate limiting decorator for FastAPI endpoints.

    The endpoint must accept ``request: Request`` and a ``redis_client``.

    Args:
        policy: Endpoint class whose limit and window apply
    """

    def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            request, redis_client = extract_request_and_redis(*args, **kwargs)

            if not request:
                logger.error("Rate limit decorator: Request not found")
                return await func(*args, **kwargs)

            if not redis_client:
                logger.warning(
                    "Rate limit decorator: Redis client not found, skipping rate limit"
                )
                return await func(*args, **kwargs)

            await check_rate_limit(request, redis_client, policy)

            return await func(*args, **kwargs)

        return wrapper

    return decorator


async def check_rate_limit(
    request: Request,
    redis_client: redis.Redis,
    policy: RateLimitPolicy,
) -> RateLimitResult:
    """
    Check rate limit for endpoint.

    Raises:
        CraftException: 429 when the window is full
    """
    client_identifier = create_rate_limit_key(request, policy)

    rate_limiter = RateLimiter(redis_client)
    result = await rate_limiter.check_rate_limit(client_identifier)

    if not result.success:
        logger.warning(
            "rate_limit_exceeded",
            policy=policy.value,
            client=str(client_identifier),
            limit=result.limit,
            window_seconds=result.window_seconds,
            retry_after=result.retry_after,
        )

        raise CraftException(
            MessageCode.RATE_LIMIT_EXCEEDED,
            status.HTTP_429_TOO_MANY_REQUESTS,
            message=retry_message(result.retry_after),
            details={
                "policy": policy.value,
                "limit": result.limit,
                "remaining": result.remaining,
                "reset": result.reset,
                "retry_after": result.retry_after,
            },
            headers=rate_limit_headers(result),
        )

    return result
