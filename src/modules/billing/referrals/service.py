"""Referral linking and monthly referral credit awards."""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from fastapi import status
from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import aliased

from src.api.core.exceptions.base import CraftException
from src.api.core.messages import MessageCode
from src.core.base import BaseService
from src.database.models import (
    Plan,
    ReferralCredit,
    ReferralCreditStatus,
    Subscription,
    SubscriptionStatus,
    User,
)
from src.utils.time import start_of_month

CREDITS_PER_REFERRAL = 1


@dataclass
class ReferralAwardSummary:
    users_processed: int = 0
    total_credits_awarded: int = 0


class ReferralService(BaseService):
    """Referral bookkeeping.

    Referral credits feed the deprecated monthly-credit statistic only; they
    never change ``User.account_balance``.
    """

    async def process_referral_signup(
        self, new_user_id: UUID, referral_code: str
    ) -> User:
        """Link a freshly registered user to the owner of ``referral_code``."""
        code = referral_code.strip().upper()
        referrer = await self.db.scalar(
            select(User).where(User.referral_code == code, User.deleted_at.is_(None))
        )
        if referrer is None or referrer.id == new_user_id:
            raise CraftException(
                MessageCode.INVALID_REFERRAL_CODE,
                status.HTTP_400_BAD_REQUEST,
                details={"referral_code": code},
            )

        new_user = await self.get_active_user(new_user_id)
        if new_user.referred_by_id is not None:
            raise CraftException(
                MessageCode.REFERRAL_ALREADY_APPLIED, status.HTTP_409_CONFLICT
            )

        new_user.referred_by_id = referrer.id
        await self.db.commit()

        await self.award_referral_credits_for_month(referrer.id, start_of_month())
        self.logger.info(
            "referral_linked",
            referrer_id=str(referrer.id),
            referred_user_id=str(new_user_id),
        )
        return referrer

    async def award_referral_credits_for_month(
        self, referrer_id: UUID, month: datetime
    ) -> int:
        """Create missing ReferralCredit rows for one referrer. Returns rows created."""
        month = start_of_month(month)

        referred_ids = (
            await self.db.scalars(
                select(User.id).where(
                    User.referred_by_id == referrer_id, User.deleted_at.is_(None)
                )
            )
        ).all()
        if not referred_ids:
            return 0

        already_awarded = set(
            (
                await self.db.scalars(
                    select(ReferralCredit.referred_user_id).where(
                        ReferralCredit.user_id == referrer_id,
                        ReferralCredit.awarded_for_month == month,
                    )
                )
            ).all()
        )

        new_rows = [
            ReferralCredit(
                user_id=referrer_id,
                referred_user_id=referred_id,
                credits_awarded=CREDITS_PER_REFERRAL,
                awarded_for_month=month,
                status=ReferralCreditStatus.ACTIVE,
            )
            for referred_id in referred_ids
            if referred_id not in already_awarded
        ]
        if not new_rows:
            return 0

        self.db.add_all(new_rows)
        try:
            await self.db.commit()
        except IntegrityError:
            # A concurrent run inserted some of these; the next run fills any gap
            await self.db.rollback()
            self.logger.warning(
                "referral_award_conflict", referrer_id=str(referrer_id)
            )
            return 0

        return len(new_rows) * CREDITS_PER_REFERRAL

    async def award_monthly_referral_credits(
        self, month: datetime | None = None
    ) -> ReferralAwardSummary:
        """Award the month's credits to every referrer with active referrals."""
        month = start_of_month(month)
        referrer = aliased(User)

        referrer_ids = (
            await self.db.scalars(
                select(User.referred_by_id)
                .join(referrer, referrer.id == User.referred_by_id)
                .where(
                    User.referred_by_id.is_not(None),
                    User.deleted_at.is_(None),
                    referrer.deleted_at.is_(None),
                )
                .distinct()
            )
        ).all()

        summary = ReferralAwardSummary()
        for referrer_id in referrer_ids:
            awarded = await self.award_referral_credits_for_month(referrer_id, month)
            summary.users_processed += 1
            summary.total_credits_awarded += awarded

        self.logger.info(
            "referral_credits_awarded",
            month=month.date().isoformat(),
            users_processed=summary.users_processed,
            total_credits_awarded=summary.total_credits_awarded,
        )
        return summary

    async def revoke_referral_credits(self, referred_user_id: UUID) -> int:
        result = await self.db.execute(
            update(ReferralCredit)
            .where(
                ReferralCredit.referred_user_id == referred_user_id,
                ReferralCredit.status == ReferralCreditStatus.ACTIVE,
            )
            .values(status=ReferralCreditStatus.REVOKED)
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()
        return result.rowcount

    async def get_user_monthly_credits(
        self, user_id: UUID, month: datetime | None = None
    ) -> dict:
        """Deprecated monthly-credit view: plan allowance plus referral credits."""
        month = start_of_month(month)

        plan_credits = await self.db.scalar(
            select(Plan.monthly_credits)
            .join(Subscription, Subscription.plan_id == Plan.id)
            .where(
                Subscription.user_id == user_id,
                Subscription.status == SubscriptionStatus.ACTIVE,
            )
        )
        referral_credits = await self.db.scalar(
            select(func.coalesce(func.sum(ReferralCredit.credits_awarded), 0)).where(
                ReferralCredit.user_id == user_id,
                ReferralCredit.awarded_for_month == month,
                ReferralCredit.status == ReferralCreditStatus.ACTIVE,
            )
        )
        plan_credits = plan_credits or 0
        referral_credits = int(referral_credits or 0)
        return {
            "plan_credits": plan_credits,
            "referral_credits": referral_credits,
            "total_credits": plan_credits + referral_credits,
        }
