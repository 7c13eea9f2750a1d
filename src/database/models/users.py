"""User model."""

import uuid
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, String, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base
from .types import Money


class UserRole(str, Enum):
    USER = "user"
    ADMIN = "admin"


class User(Base):
    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint("account_balance >= 0", name="balance_non_negative"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUID, primary_key=True, default=uuid.uuid4)
    email: Mapped[str] = mapped_column(String, unique=True, nullable=False)
    name: Mapped[str | None] = mapped_column(String, nullable=True)
    role: Mapped[UserRole] = mapped_column(
        String, nullable=False, default=UserRole.USER
    )

    # Prepaid balance in USD, the only spendable value
    account_balance: Mapped[Decimal] = mapped_column(
        Money, nullable=False, default=Decimal("0")
    )

    referral_code: Mapped[str | None] = mapped_column(
        String, unique=True, nullable=True
    )
    referred_by_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    razorpay_customer_id: Mapped[str | None] = mapped_column(String, nullable=True)
    polar_customer_id: Mapped[str | None] = mapped_column(String, nullable=True)

    deleted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # Relationships
    subscription = relationship(
        "Subscription", back_populates="user", uselist=False, lazy="raise"
    )
    referred_by = relationship("User", remote_side=[id], lazy="raise")

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN
