import time
import uuid

import redis.asyncio as redis

from src.api.core.models.rate_limit import (
    RATE_LIMIT_POLICIES,
    ClientIdentifier,
    RateLimitConfig,
    RateLimitResult,
)
from src.utils.logger import get_logger

logger = get_logger(__name__)


class RateLimiter:
    """Rate limiter using Redis sliding window algorithm."""

    def __init__(self, redis_client: redis.Redis):
        self.redis_client = redis_client

    async def check_rate_limit(
        self,
        client_identifier: ClientIdentifier,
        config: RateLimitConfig | None = None,
    ) -> RateLimitResult:
        """Count this request against the client's window for its policy.

        Args:
            client_identifier: Policy plus client the request is attributed to
            config: Overrides the policy's limit and window

        Returns:
            RateLimitResult with ``success`` False once the window is full
        """
        config = config or RATE_LIMIT_POLICIES[client_identifier.policy]
        limit, window_seconds = config.limit, config.window_seconds

        key = client_identifier.to_cache_key()
        current_time = int(time.time())
        try:
            window_start = current_time - window_seconds

            # Use Redis pipeline for atomic operations
            pipe = self.redis_client.pipeline()

            # Remove expired entries
            pipe.zremrangebyscore(key, 0, window_start)

            # Count current requests in window
            pipe.zcard(key)

            # Oldest request still inside the window
            pipe.zrange(key, 0, 0, withscores=True)

            # UUID member keeps same-second requests distinct
            request_id = f"req_{current_time}_{uuid.uuid4().hex}"
            pipe.zadd(key, {request_id: current_time})

            # Set expiry
            pipe.expire(key, window_seconds + 1)

            results = await pipe.execute()
            current_count = results[1] + 1
            oldest = results[2]
            oldest_time = int(oldest[0][1]) if oldest else current_time

            success = current_count <= limit
            if not success:
                # Rejected requests do not occupy a slot
                await self.redis_client.zrem(key, request_id)
                current_count -= 1

            reset = oldest_time + window_seconds
            return RateLimitResult(
                success=success,
                limit=limit,
                remaining=max(0, limit - current_count),
                reset=reset,
                window_seconds=window_seconds,
                retry_after=0 if success else max(0, reset - current_time),
                client_identifier=client_identifier,
            )

        except Exception as e:
            logger.error(
                "rate_limiter_unavailable",
                client=str(client_identifier),
                policy=client_identifier.policy.value,
                error=str(e),
            )
            # Fail open - allow request if Redis is down
            return RateLimitResult(
                success=True,
                limit=limit,
                remaining=limit,
                reset=current_time + window_seconds,
                window_seconds=window_seconds,
                retry_after=0,
                client_identifier=client_identifier,
            )

    async def get_remaining(self, client_identifier: ClientIdentifier) -> int:
        """Get remaining requests in current window without consuming one."""
        config = RATE_LIMIT_POLICIES[client_identifier.policy]
        key = client_identifier.to_cache_key()
        try:
            window_start = int(time.time()) - config.window_seconds

            # Remove expired and count current
            pipe = self.redis_client.pipeline()
            pipe.zremrangebyscore(key, 0, window_start)
            pipe.zcard(key)
            results = await pipe.execute()

            return max(0, config.limit - results[1])

        except Exception as e:
            logger.error("rate_limiter_unavailable", key=key, error=str(e))
            return config.limit
