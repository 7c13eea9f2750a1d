"""Dispatch of typed webhook events to business handlers.

Handlers must be idempotent: the queue delivers at least once.
"""

from typing import Awaitable, Callable

from sqlalchemy.ext.asyncio import AsyncSession

from src.database.models import WebhookProvider
from src.modules.webhooks.events import ProviderEvent
from src.utils.logger import get_logger
from . import polar, razorpay

logger = get_logger(__name__)

Handler = Callable[[AsyncSession, ProviderEvent], Awaitable[None]]

HANDLERS: dict[tuple[WebhookProvider, str], Handler] = {
    (WebhookProvider.POLAR, "order.created"): polar.handle_order_created,
    (WebhookProvider.POLAR, "subscription.active"): polar.handle_subscription_sync,
    (WebhookProvider.POLAR, "subscription.updated"): polar.handle_subscription_sync,
    (WebhookProvider.POLAR, "subscription.renewed"): polar.handle_subscription_sync,
    (WebhookProvider.POLAR, "subscription.canceled"): polar.handle_subscription_sync,
    (WebhookProvider.POLAR, "subscription.revoked"): polar.handle_subscription_sync,
    (WebhookProvider.RAZORPAY, "payment.captured"): razorpay.handle_payment_captured,
    (WebhookProvider.RAZORPAY, "payment.failed"): razorpay.handle_payment_failed,
    (WebhookProvider.RAZORPAY, "order.paid"): razorpay.handle_order_paid,
}


async def dispatch_event(db: AsyncSession, event: ProviderEvent) -> bool:
    """Run the handler for ``event``. Returns False when none is registered."""
    handler = HANDLERS.get((event.provider, event.type))
    if handler is None:
        logger.info(
            "webhook_event_unhandled",
            provider=event.provider,
            event_type=event.type,
        )
        return False
    await handler(db, event)
    return True


__all__ = ["HANDLERS", "dispatch_event"]
