"""Polar event handlers."""

from uuid import UUID

from sqlalchemy import or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from src.database.models import BalanceTransactionType, Subscription, SubscriptionStatus, User
from src.modules.billing.constants import BALANCE_TOPUP_PURCHASE_TYPE, to_money
from src.modules.billing.ledger import BalanceLedgerService
from src.modules.webhooks.events import PolarOrderEvent, PolarSubscriptionEvent
from src.utils.logger import get_logger
from src.utils.time import utcnow

logger = get_logger(__name__)

_STATUS_MAP = {
    "active": SubscriptionStatus.ACTIVE,
    "trialing": SubscriptionStatus.TRIALING,
    "past_due": SubscriptionStatus.PAST_DUE,
    "unpaid": SubscriptionStatus.UNPAID,
    "canceled": SubscriptionStatus.CANCELED,
    "incomplete_expired": SubscriptionStatus.EXPIRED,
}


async def _resolve_user_id(db: AsyncSession, event: PolarOrderEvent) -> UUID | None:
    order = event.data
    if order.metadata.user_id:
        try:
            user_id = UUID(order.metadata.user_id)
        except ValueError:
            logger.warning(
                "polar_order_invalid_user_id",
                order_id=order.id,
                user_id=order.metadata.user_id,
            )
            return None
        return await db.scalar(
            select(User.id).where(User.id == user_id, User.deleted_at.is_(None))
        )

    external_id = order.customer.external_id if order.customer else None
    conditions = []
    if order.customer_id:
        conditions.append(User.polar_customer_id == order.customer_id)
    if external_id:
        try:
            conditions.append(User.id == UUID(external_id))
        except ValueError:
            pass
    if not conditions:
        return None
    return await db.scalar(
        select(User.id).where(or_(*conditions), User.deleted_at.is_(None)).limit(1)
    )


async def handle_order_created(db: AsyncSession, event: PolarOrderEvent) -> None:
    order = event.data
    metadata = order.metadata
    if metadata.purchase_type != BALANCE_TOPUP_PURCHASE_TYPE:
        logger.info(
            "polar_order_ignored",
            order_id=order.id,
            purchase_type=metadata.purchase_type,
        )
        return

    user_id = await _resolve_user_id(db, event)
    if user_id is None:
        # Raised so the job retries; the user row may not be committed yet
        raise LookupError(
            f"User not found for order {order.id} "
            f"(user_id={metadata.user_id}, customer_id={order.customer_id})"
        )

    requested = to_money(metadata.requested_balance or 0)
    if requested <= 0:
        raise ValueError(
            f"Invalid requested balance {metadata.requested_balance!r} "
            f"for order {order.id}"
        )

    platform_fee = to_money(metadata.platform_fee or 0)
    total_charged = to_money(metadata.total_charged or 0)
    result = await BalanceLedgerService(db).credit(
        user_id,
        requested,
        BalanceTransactionType.TOPUP,
        description=(
            f"Balance top-up: Added ${requested:.2f} "
            f"(paid ${total_charged:.2f} including ${platform_fee:.2f} platform fee)"
        ),
        metadata={
            "provider": "polar",
            "order_id": order.id,
            "platform_fee": str(platform_fee),
            "total_charged": str(total_charged),
            "currency": order.currency,
        },
        reference_id=f"polar:order:{order.id}",
    )
    logger.info(
        "polar_topup_applied",
        order_id=order.id,
        user_id=str(user_id),
        amount=str(requested),
        duplicate=result.duplicate,
    )


async def handle_subscription_sync(
    db: AsyncSession, event: PolarSubscriptionEvent
) -> None:
    """Mirror Polar's view of a subscription onto the local row."""
    subscription = event.data
    if event.type in ("subscription.canceled", "subscription.revoked"):
        status = SubscriptionStatus.CANCELED
    elif event.type in ("subscription.active", "subscription.renewed"):
        status = SubscriptionStatus.ACTIVE
    else:
        status = _STATUS_MAP.get(subscription.status, SubscriptionStatus.ACTIVE)

    values: dict = {
        "status": status,
        "cancel_at_period_end": subscription.cancel_at_period_end,
        "updated_at": utcnow(),
    }
    if subscription.current_period_start and subscription.current_period_end:
        values["current_period_start"] = subscription.current_period_start
        values["current_period_end"] = subscription.current_period_end

    result = await db.execute(
        update(Subscription)
        .where(Subscription.polar_subscription_id == subscription.id)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    await db.commit()

    if result.rowcount == 0:
        logger.warning(
            "polar_subscription_not_found",
            polar_subscription_id=subscription.id,
            event_type=event.type,
        )
        return

    logger.info(
        "polar_subscription_synced",
        polar_subscription_id=subscription.id,
        event_type=event.type,
        status=status,
    )
