"""Billing period bookkeeping for subscriptions."""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from uuid import UUID

from sqlalchemy import select, update

from src.core.base import BaseService
from src.database.models import Subscription, SubscriptionStatus
from src.utils.settings.cron import CronSettings
from src.utils.time import utcnow


@dataclass
class PeriodResetError:
    subscription_id: str
    user_id: str
    error: str


@dataclass
class PeriodResetSummary:
    total_found: int = 0
    success_count: int = 0
    skipped_count: int = 0
    errors: list[PeriodResetError] = field(default_factory=list)

    @property
    def error_count(self) -> int:
        return len(self.errors)


class SubscriptionPeriodService(BaseService):
    """Advances expired billing periods and clears the legacy usage counter."""

    def __init__(self, db, period_days: int | None = None):
        super().__init__(db)
        self.period_days = period_days or CronSettings().BILLING_PERIOD_DAYS

    async def find_expired_subscriptions(self, now: datetime) -> list[Subscription]:
        result = await self.db.execute(
            select(Subscription)
            .where(
                Subscription.status == SubscriptionStatus.ACTIVE,
                Subscription.current_period_end <= now,
            )
            .order_by(Subscription.current_period_end)
        )
        return list(result.scalars().all())

    async def advance_period(
        self, subscription_id: UUID, period_end: datetime, now: datetime
    ) -> bool:
        """Move one subscription into its next period.

        The update only matches while ``current_period_end`` still equals the
        value the scan saw, so a concurrent run cannot advance it twice.
        Returns False when another run got there first.
        """
        new_start = period_end
        new_end = period_end + timedelta(days=self.period_days)

        result = await self.db.execute(
            update(Subscription)
            .where(
                Subscription.id == subscription_id,
                Subscription.status == SubscriptionStatus.ACTIVE,
                Subscription.current_period_end == period_end,
            )
            .values(
                monthly_credits_used=0,
                period_credits_reset=now,
                current_period_start=new_start,
                current_period_end=new_end,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()
        return result.rowcount == 1

    async def reset_expired_periods(
        self, now: datetime | None = None
    ) -> PeriodResetSummary:
        """Reset every ACTIVE subscription whose period has ended.

        Each subscription commits on its own; one failure is recorded and the
        scan continues.
        """
        now = now or utcnow()
        subscriptions = await self.find_expired_subscriptions(now)

        # Plain values survive the rollback of a failed item
        targets = [(s.id, s.user_id, s.current_period_end) for s in subscriptions]
        summary = PeriodResetSummary(total_found=len(targets))

        self.logger.info("credit_reset_started", total_found=summary.total_found)

        for subscription_id, user_id, period_end in targets:
            try:
                if await self.advance_period(subscription_id, period_end, now):
                    summary.success_count += 1
                else:
                    summary.skipped_count += 1
            except Exception as e:
                await self.db.rollback()
                self.logger.error(
                    "credit_reset_failed",
                    subscription_id=str(subscription_id),
                    user_id=str(user_id),
                    error=str(e),
                )
                summary.errors.append(
                    PeriodResetError(
                        subscription_id=str(subscription_id),
                        user_id=str(user_id),
                        error=str(e),
                    )
                )

        self.logger.info(
            "credit_reset_finished",
            total_found=summary.total_found,
            success_count=summary.success_count,
            skipped_count=summary.skipped_count,
            error_count=summary.error_count,
        )
        return summary
