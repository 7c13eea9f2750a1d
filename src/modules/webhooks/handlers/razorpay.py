"""Razorpay event handlers."""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.database.models import BalanceTransactionType, User
from src.modules.billing.constants import BALANCE_TOPUP_PURCHASE_TYPE, to_money
from src.modules.billing.ledger import BalanceLedgerService
from src.modules.webhooks.events import (
    RazorpayOrderEvent,
    RazorpayPayment,
    RazorpayPaymentEvent,
)
from src.utils.logger import get_logger

logger = get_logger(__name__)


def from_smallest_unit(amount: int) -> Decimal:
    return to_money(amount) / 100


async def _resolve_user_id(db: AsyncSession, payment: RazorpayPayment) -> UUID | None:
    """Payment notes first, then the payer's email."""
    if payment.notes.user_id:
        try:
            user_id = await db.scalar(
                select(User.id).where(
                    User.id == UUID(payment.notes.user_id), User.deleted_at.is_(None)
                )
            )
        except ValueError:
            user_id = None
        if user_id is not None:
            return user_id

    if payment.email:
        return await db.scalar(
            select(User.id).where(
                func.lower(User.email) == payment.email.lower(),
                User.deleted_at.is_(None),
            )
        )
    return None


async def handle_payment_captured(
    db: AsyncSession, event: RazorpayPaymentEvent
) -> None:
    payment = event.payment
    notes = payment.notes
    if notes.purchase_type != BALANCE_TOPUP_PURCHASE_TYPE:
        logger.info(
            "razorpay_payment_ignored",
            payment_id=payment.id,
            purchase_type=notes.purchase_type,
        )
        return

    user_id = await _resolve_user_id(db, payment)
    if user_id is None:
        # Raised so the job retries; the user row may not be committed yet
        raise LookupError(
            f"User not found for payment {payment.id} "
            f"(user_id={notes.user_id}, email={payment.email})"
        )

    requested = to_money(notes.requested_balance or 0)
    if requested <= 0:
        raise ValueError(
            f"Invalid requested balance {notes.requested_balance!r} "
            f"for payment {payment.id}"
        )

    result = await BalanceLedgerService(db).credit(
        user_id,
        requested,
        BalanceTransactionType.TOPUP,
        description=f"Balance top-up via Razorpay - {payment.method or 'unknown'}",
        metadata={
            "provider": "razorpay",
            "payment_id": payment.id,
            "order_id": payment.order_id,
            "total_charged": str(from_smallest_unit(payment.amount)),
            "currency": payment.currency.upper(),
        },
        reference_id=f"razorpay:payment:{payment.id}",
    )
    logger.info(
        "razorpay_topup_applied",
        payment_id=payment.id,
        user_id=str(user_id),
        amount=str(requested),
        duplicate=result.duplicate,
    )


async def handle_payment_failed(
    db: AsyncSession, event: RazorpayPaymentEvent
) -> None:
    payment = event.payment
    logger.warning(
        "razorpay_payment_failed",
        payment_id=payment.id,
        order_id=payment.order_id,
        user_id=payment.notes.user_id,
        reason=payment.error_description,
    )


async def handle_order_paid(db: AsyncSession, event: RazorpayOrderEvent) -> None:
    # Balance is credited from payment.captured; order.paid is informational
    logger.info(
        "razorpay_order_paid",
        order_id=event.order.id,
        amount=str(from_smallest_unit(event.order.amount)),
    )
