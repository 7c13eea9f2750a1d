"""Balance ledger models."""

import uuid
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum

from sqlalchemy import DateTime, ForeignKey, String, UUID
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base
from .types import JSONType, Money


class BalanceTransactionType(str, Enum):
    TOPUP = "topup"
    AI_USAGE = "ai_usage"
    SANDBOX_USAGE = "sandbox_usage"
    STORAGE_USAGE = "storage_usage"
    DATABASE_USAGE = "database_usage"
    DEPLOYMENT = "deployment"
    REFUND = "refund"
    ADJUSTMENT = "adjustment"


class BalanceTransaction(Base):
    """Append-only record of every balance mutation."""

    __tablename__ = "balance_transactions"

    id: Mapped[uuid.UUID] = mapped_column(UUID, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    type: Mapped[BalanceTransactionType] = mapped_column(String, nullable=False)
    # Signed: credits positive, deductions negative
    amount: Mapped[Decimal] = mapped_column(Money, nullable=False)
    balance_before: Mapped[Decimal] = mapped_column(Money, nullable=False)
    balance_after: Mapped[Decimal] = mapped_column(Money, nullable=False)
    description: Mapped[str | None] = mapped_column(String, nullable=True)
    details: Mapped[dict | None] = mapped_column("metadata", JSONType, nullable=True)
    # Idempotency key of provider-driven mutations, e.g. "razorpay:payment:pay_X"
    reference_id: Mapped[str | None] = mapped_column(
        String, unique=True, nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
