import pickle
import redis.asyncio as redis
from functools import wraps
from uuid import UUID

from src.utils.logger import get_logger
from src.utils.settings.redis import RedisSettings

logger = get_logger(__name__)


def _generate_cache_key(func, args: tuple, kwargs: dict) -> str:
    """Generate cache key from function name and business parameters only."""
    key_parts = [func.__module__.replace(".", ":"), func.__qualname__.replace(".", ":")]

    # Only include simple types in cache key (skip self, AsyncSession, etc.)
    for arg in args:
        if isinstance(arg, (str, int, float, bool, UUID)):
            safe_arg = str(arg).replace(":", "_").replace("*", "_")
            key_parts.append(safe_arg)

    for k, v in sorted(kwargs.items()):
        if isinstance(v, (str, int, float, bool, UUID)):
            safe_val = str(v).replace(":", "_").replace("*", "_")
            key_parts.append(f"{k}={safe_val}")

    return "cache:" + ":".join(key_parts)


async def _get_cache(key: str):
    """Get value from Redis cache."""
    try:
        redis_client = redis.from_url(RedisSettings().REDIS_URL, decode_responses=False)
        value = await redis_client.get(key)
        await redis_client.aclose()

        if value is not None:
            return pickle.loads(value)
        return None
    except Exception as e:
        logger.error(f"Failed to get cache key '{key}': {e}")
        return None


async def _set_cache(key: str, value, ttl: int, tags: list[str] | None = None) -> bool:
    """Set value in Redis cache with TTL and optional tags."""
    try:
        redis_client = redis.from_url(RedisSettings().REDIS_URL, decode_responses=False)
        await redis_client.setex(key, ttl, pickle.dumps(value))

        # Track cache key by tags for invalidation
        for tag in tags or []:
            tag_key = f"cache:tag:{tag}"
            await redis_client.sadd(tag_key, key)
            await redis_client.expire(tag_key, ttl)

        await redis_client.aclose()
        return True
    except Exception as e:
        logger.error(f"Failed to set cache key '{key}': {e}")
        return False


def _extract_tags(args: tuple, kwargs: dict) -> list[str]:
    """Tag cache entries with every user id found in the call arguments."""
    tags = [f"user:{arg}" for arg in args if isinstance(arg, UUID)]
    tags.extend(
        f"user:{v}"
        for k, v in kwargs.items()
        if isinstance(v, UUID) and "user" in k.lower()
    )
    return tags


def cached(ttl: int = 900):
    """Cache decorator with Redis backend."""

    def decorator(func):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            cache_key = _generate_cache_key(func, args, kwargs)

            cached_value = await _get_cache(cache_key)
            if cached_value is not None:
                logger.debug(f"Cache hit: {cache_key}")
                return cached_value

            result = await func(*args, **kwargs)

            tags = _extract_tags(args, kwargs)
            await _set_cache(cache_key, result, ttl, tags)

            logger.debug(f"Cached: {cache_key}")
            return result

        return wrapper

    return decorator


async def _invalidate_by_tag(tag: str) -> int:
    """Invalidate all cache entries with a specific tag."""
    try:
        redis_client = redis.from_url(RedisSettings().REDIS_URL, decode_responses=True)

        tag_key = f"cache:tag:{tag}"
        cache_keys = await redis_client.smembers(tag_key)

        if not cache_keys:
            await redis_client.aclose()
            return 0

        deleted = await redis_client.delete(*cache_keys, tag_key)
        await redis_client.aclose()

        logger.info(f"Invalidated {len(cache_keys)} entries for {tag}")
        return deleted

    except Exception as e:
        logger.error(f"Failed to invalidate tag '{tag}': {e}")
        return 0


async def invalidate_user_cache(user_id: UUID) -> int:
    """Invalidate all cache entries for a specific user."""
    count = await _invalidate_by_tag(f"user:{user_id}")
    logger.debug(f"Invalidated {count} cache entries for user {user_id}")
    return count


async def invalidate_balance_cache(user_id: UUID) -> int:
    """Drop cached balance views after a ledger mutation."""
    return await invalidate_user_cache(user_id)
