from typing import Annotated, AsyncGenerator

from fastapi import Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
import redis.asyncio as redis

from src.api.core.exceptions.base import CraftException
from src.api.core.messages import MessageCode
from src.core.context import AuthenticatedUserContext
from src.modules.analytics.service import AnalyticsService
from src.modules.billing.ledger import BalanceLedgerService
from src.modules.billing.referrals import ReferralService
from src.modules.billing.subscriptions import SubscriptionPeriodService
from src.modules.webhooks.service import WebhookEventService
from src.redis.client import get_redis_client


async def get_db_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Get database session from app state."""
    session_factory = request.app.state.session_factory
    async with session_factory() as session:
        yield session


async def get_balance_ledger_service(
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> BalanceLedgerService:
    return BalanceLedgerService(db)


async def get_subscription_period_service(
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> SubscriptionPeriodService:
    return SubscriptionPeriodService(db)


async def get_referral_service(
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ReferralService:
    return ReferralService(db)


async def get_webhook_event_service(
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> WebhookEventService:
    return WebhookEventService(db)


async def get_analytics_service(
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> AnalyticsService:
    return AnalyticsService(db)


async def get_current_user_authenticated(request: Request) -> AuthenticatedUserContext:
    """Dependency to get the authenticated user resolved by the auth middleware."""
    context = getattr(request.state, "auth_context", None)
    if context is None:
        auth_error = getattr(request.state, "auth_error", None)
        if auth_error is not None:
            raise auth_error
        raise CraftException(MessageCode.AUTH_REQUIRED, status.HTTP_401_UNAUTHORIZED)

    return context


AsyncSessionDep = Annotated[AsyncSession, Depends(get_db_session)]
RedisDep = Annotated[redis.Redis, Depends(get_redis_client)]
BalanceLedgerServiceDep = Annotated[
    BalanceLedgerService, Depends(get_balance_ledger_service)
]
SubscriptionPeriodServiceDep = Annotated[
    SubscriptionPeriodService, Depends(get_subscription_period_service)
]
ReferralServiceDep = Annotated[ReferralService, Depends(get_referral_service)]
WebhookEventServiceDep = Annotated[
    WebhookEventService, Depends(get_webhook_event_service)
]
AnalyticsServiceDep = Annotated[AnalyticsService, Depends(get_analytics_service)]

CurrentUserDep = Annotated[
    AuthenticatedUserContext, Depends(get_current_user_authenticated)
]
