from .decorator import cached, invalidate_balance_cache, invalidate_user_cache

__all__ = ["cached", "invalidate_balance_cache", "invalidate_user_cache"]
