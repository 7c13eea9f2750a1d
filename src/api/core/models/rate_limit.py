"""Rate limiting types and models."""

from enum import Enum

from pydantic import BaseModel


class RateLimitClientType(str, Enum):
    """Types of clients for rate limiting."""

    USER = "user"
    IP = "ip"


class RateLimitPolicy(str, Enum):
    """Endpoint classes, each with its own window and threshold."""

    AUTH = "auth"
    PASSWORD_RESET = "password_reset"
    TWO_FACTOR = "two_factor"
    BILLING = "billing"
    WEBHOOK = "webhook"
    ADMIN = "admin"


class RateLimitConfig(BaseModel):
    """Configuration for rate limiting."""

    limit: int
    window_seconds: int


RATE_LIMIT_POLICIES: dict[RateLimitPolicy, RateLimitConfig] = {
    RateLimitPolicy.AUTH: RateLimitConfig(limit=5, window_seconds=3600),
    RateLimitPolicy.PASSWORD_RESET: RateLimitConfig(limit=3, window_seconds=3600),
    RateLimitPolicy.TWO_FACTOR: RateLimitConfig(limit=5, window_seconds=900),
    RateLimitPolicy.BILLING: RateLimitConfig(limit=10, window_seconds=60),
    RateLimitPolicy.WEBHOOK: RateLimitConfig(limit=120, window_seconds=60),
    RateLimitPolicy.ADMIN: RateLimitConfig(limit=60, window_seconds=60),
}


# Cache keys: rate_limit:{policy}:{client_type}:{identifier}
# - rate_limit:auth:ip:1.2.3.4
# - rate_limit:billing:user:123


class ClientIdentifier(BaseModel):
    """Client identifier for rate limiting."""

    policy: RateLimitPolicy
    client_type: RateLimitClientType
    client_id: str

    def to_cache_key(self) -> str:
        """Generate Redis cache key for this client."""
        return f"rate_limit:{self.policy.value}:{self.client_type.value}:{self.client_id}"

    def __str__(self) -> str:
        return f"{self.client_type.value}:{self.client_id}"


class RateLimitResult(BaseModel):
    """Result of a rate limit check."""

    success: bool
    limit: int
    remaining: int
    # Unix time at which the oldest request leaves the window
    reset: int
    window_seconds: int
    # Seconds until a slot frees up, 0 while under the limit
    retry_after: int
    client_identifier: ClientIdentifier
