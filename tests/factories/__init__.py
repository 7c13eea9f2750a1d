"""Test factories for Craft billing models."""

from .base import AsyncSQLAlchemyModelFactory
from .plans import PlanFactory
from .subscriptions import SubscriptionFactory
from .usage import AICreditUsageFactory
from .users import UserFactory
from .webhooks import WebhookEventFactory

__all__ = [
    "AsyncSQLAlchemyModelFactory",
    "AICreditUsageFactory",
    "PlanFactory",
    "SubscriptionFactory",
    "UserFactory",
    "WebhookEventFactory",
]
