"""Referral credit awards."""

import uuid
from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import DateTime, ForeignKey, Integer, String, UniqueConstraint, UUID
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class ReferralCreditStatus(str, Enum):
    ACTIVE = "active"
    REVOKED = "revoked"


class ReferralCredit(Base):
    __tablename__ = "referral_credits"
    __table_args__ = (
        UniqueConstraint(
            "user_id",
            "referred_user_id",
            "awarded_for_month",
            name="uq_referral_credits_user_referred_month",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUID, primary_key=True, default=uuid.uuid4)
    # Referrer receiving the credit
    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    referred_user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    credits_awarded: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    awarded_for_month: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    status: Mapped[ReferralCreditStatus] = mapped_column(
        String, nullable=False, default=ReferralCreditStatus.ACTIVE
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
