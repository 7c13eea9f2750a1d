"""Database models for the Craft billing service."""

from .base import Base
from .balance import BalanceTransaction, BalanceTransactionType
from .plans import Plan
from .referrals import ReferralCredit, ReferralCreditStatus
from .subscriptions import Subscription, SubscriptionStatus
from .usage import AICreditUsage, CallType
from .users import User, UserRole
from .webhooks import WebhookEvent, WebhookEventStatus, WebhookProvider

__all__ = [
    # Base
    "Base",
    # Enums
    "BalanceTransactionType",
    "CallType",
    "ReferralCreditStatus",
    "SubscriptionStatus",
    "UserRole",
    "WebhookEventStatus",
    "WebhookProvider",
    # Models
    "AICreditUsage",
    "BalanceTransaction",
    "Plan",
    "ReferralCredit",
    "Subscription",
    "User",
    "WebhookEvent",
]
