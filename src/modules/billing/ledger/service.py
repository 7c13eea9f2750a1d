"""Prepaid balance ledger.

Every mutation is a single conditional UPDATE on the user row followed by an
append to ``balance_transactions``, committed together. The database row lock
taken by the UPDATE is the only concurrency boundary: two concurrent
deductions that jointly exceed the balance cannot both match the
``account_balance >= amount`` predicate.
"""

from decimal import Decimal
from uuid import UUID, uuid4

from fastapi import status
from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError

from src.api.core.exceptions.base import CraftException
from src.api.core.messages import MessageCode
from src.cache import cached, invalidate_balance_cache
from src.core.base import BaseService
from src.database.models import (
    AICreditUsage,
    BalanceTransaction,
    BalanceTransactionType,
    CallType,
    User,
)
from src.modules.billing.constants import calculate_ai_cost, to_money
from src.utils.settings.redis import RedisSettings
from .results import Applied, BalanceCheck, InsufficientBalance, LedgerResult

BALANCE_CACHE_TTL = RedisSettings().BALANCE_CACHE_TTL_SECONDS


class BalanceLedgerService(BaseService):
    """Reads and mutates user balances."""

    async def get_balance(self, user_id: UUID) -> Decimal:
        """Current committed balance, straight from the database."""
        balance = await self.db.scalar(
            select(User.account_balance).where(
                User.id == user_id, User.deleted_at.is_(None)
            )
        )
        if balance is None:
            raise CraftException(
                MessageCode.USER_NOT_FOUND,
                status.HTTP_404_NOT_FOUND,
                details={"user_id": str(user_id)},
            )
        return to_money(balance)

    async def check_balance(
        self, user_id: UUID, estimated_cost: Decimal | float
    ) -> BalanceCheck:
        required = to_money(estimated_cost)
        balance = await self.get_balance(user_id)
        return BalanceCheck(
            allowed=balance >= required, balance=balance, required=required
        )

    @cached(ttl=BALANCE_CACHE_TTL)
    async def get_balance_summary(self, user_id: UUID) -> dict:
        """Balance plus lifetime totals for display. Cached, never used for checks."""
        balance = await self.get_balance(user_id)

        totals = await self.db.execute(
            select(
                func.coalesce(
                    func.sum(BalanceTransaction.amount).filter(
                        BalanceTransaction.amount > 0
                    ),
                    0,
                ),
                func.coalesce(
                    func.sum(BalanceTransaction.amount).filter(
                        BalanceTransaction.amount < 0
                    ),
                    0,
                ),
                func.max(BalanceTransaction.created_at),
            ).where(BalanceTransaction.user_id == user_id)
        )
        credited, debited, last_at = totals.one()

        return {
            "user_id": str(user_id),
            "balance": balance,
            "currency": "USD",
            "lifetime_credited": to_money(credited),
            "lifetime_spent": to_money(-Decimal(str(debited))),
            "last_transaction_at": last_at,
        }

    async def list_transactions(
        self, user_id: UUID, limit: int = 50, offset: int = 0
    ) -> tuple[list[BalanceTransaction], int]:
        total = await self.db.scalar(
            select(func.count(BalanceTransaction.id)).where(
                BalanceTransaction.user_id == user_id
            )
        )
        result = await self.db.execute(
            select(BalanceTransaction)
            .where(BalanceTransaction.user_id == user_id)
            .order_by(BalanceTransaction.created_at.desc())
            .limit(limit)
            .offset(offset)
        )
        return list(result.scalars().all()), total or 0

    async def deduct(
        self,
        user_id: UUID,
        amount: Decimal | float,
        transaction_type: BalanceTransactionType,
        description: str | None = None,
        metadata: dict | None = None,
        reference_id: str | None = None,
        usage: AICreditUsage | None = None,
    ) -> LedgerResult:
        """Take ``amount`` from the balance if, and only if, it is covered.

        ``usage`` is persisted in the same transaction as the deduction.
        """
        amount = self._positive(amount)

        if reference_id:
            existing = await self._find_by_reference(reference_id)
            if existing is not None:
                return self._as_duplicate(existing)

        result = await self.db.execute(
            update(User)
            .where(
                User.id == user_id,
                User.deleted_at.is_(None),
                User.account_balance >= amount,
            )
            .values(account_balance=User.account_balance - amount)
            .returning(User.account_balance)
            .execution_options(synchronize_session=False)
        )
        balance_after = result.scalar_one_or_none()

        if balance_after is None:
            await self.db.rollback()
            balance = await self.get_balance(user_id)
            self.logger.info(
                "insufficient_balance",
                user_id=str(user_id),
                balance=str(balance),
                required=str(amount),
                transaction_type=transaction_type,
            )
            return InsufficientBalance(balance=balance, required=amount)

        return await self._record(
            user_id=user_id,
            transaction_type=transaction_type,
            signed_amount=-amount,
            balance_after=to_money(balance_after),
            description=description,
            metadata=metadata,
            reference_id=reference_id,
            extra_rows=[usage] if usage is not None else [],
        )

    async def credit(
        self,
        user_id: UUID,
        amount: Decimal | float,
        transaction_type: BalanceTransactionType = BalanceTransactionType.TOPUP,
        description: str | None = None,
        metadata: dict | None = None,
        reference_id: str | None = None,
    ) -> Applied:
        """Add to the balance. A known ``reference_id`` makes this a no-op."""
        amount = self._positive(amount)

        if reference_id:
            existing = await self._find_by_reference(reference_id)
            if existing is not None:
                self.logger.info(
                    "balance_credit_already_applied",
                    user_id=str(user_id),
                    reference_id=reference_id,
                )
                return self._as_duplicate(existing)

        result = await self.db.execute(
            update(User)
            .where(User.id == user_id, User.deleted_at.is_(None))
            .values(account_balance=User.account_balance + amount)
            .returning(User.account_balance)
            .execution_options(synchronize_session=False)
        )
        balance_after = result.scalar_one_or_none()
        if balance_after is None:
            await self.db.rollback()
            raise CraftException(
                MessageCode.USER_NOT_FOUND,
                status.HTTP_404_NOT_FOUND,
                details={"user_id": str(user_id)},
            )

        applied = await self._record(
            user_id=user_id,
            transaction_type=transaction_type,
            signed_amount=amount,
            balance_after=to_money(balance_after),
            description=description,
            metadata=metadata,
            reference_id=reference_id,
        )
        return applied

    async def charge_ai_usage(
        self,
        user_id: UUID,
        model: str,
        input_tokens: int,
        output_tokens: int,
        project_id: str | None = None,
        endpoint: str | None = None,
        call_type: CallType = CallType.CHAT,
    ) -> LedgerResult:
        """Price an AI call and charge it, appending the usage row on success."""
        if input_tokens < 0 or output_tokens < 0 or input_tokens + output_tokens == 0:
            raise CraftException(
                MessageCode.INVALID_AMOUNT,
                status.HTTP_400_BAD_REQUEST,
                details={"description": "Token counts must be positive"},
            )

        cost = calculate_ai_cost(model, input_tokens, output_tokens)
        usage = AICreditUsage(
            user_id=user_id,
            project_id=project_id,
            model=model,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            total_tokens=input_tokens + output_tokens,
            provider_cost_usd=cost,
            endpoint=endpoint,
            call_type=call_type,
        )
        return await self.deduct(
            user_id,
            cost,
            BalanceTransactionType.AI_USAGE,
            description=f"AI usage: {model}",
            metadata={
                "model": model,
                "input_tokens": input_tokens,
                "output_tokens": output_tokens,
                "project_id": project_id,
            },
            usage=usage,
        )

    async def _record(
        self,
        user_id: UUID,
        transaction_type: BalanceTransactionType,
        signed_amount: Decimal,
        balance_after: Decimal,
        description: str | None,
        metadata: dict | None,
        reference_id: str | None,
        extra_rows: list | None = None,
    ) -> Applied:
        transaction = BalanceTransaction(
            id=uuid4(),
            user_id=user_id,
            type=transaction_type,
            amount=signed_amount,
            balance_before=balance_after - signed_amount,
            balance_after=balance_after,
            description=description,
            details=metadata,
            reference_id=reference_id,
        )
        self.db.add(transaction)
        for row in extra_rows or []:
            self.db.add(row)

        try:
            await self.db.commit()
        except IntegrityError:
            # Concurrent delivery of the same reference won the insert
            await self.db.rollback()
            if reference_id:
                existing = await self._find_by_reference(reference_id)
                if existing is not None:
                    return self._as_duplicate(existing)
            raise

        await invalidate_balance_cache(user_id)

        self.logger.info(
            "balance_updated",
            user_id=str(user_id),
            transaction_type=transaction_type,
            amount=str(signed_amount),
            balance_after=str(balance_after),
            reference_id=reference_id,
        )
        return Applied(
            transaction_id=transaction.id,
            amount=signed_amount,
            balance_before=balance_after - signed_amount,
            balance_after=balance_after,
        )

    async def _find_by_reference(self, reference_id: str) -> BalanceTransaction | None:
        return await self.db.scalar(
            select(BalanceTransaction).where(
                BalanceTransaction.reference_id == reference_id
            )
        )

    @staticmethod
    def _as_duplicate(transaction: BalanceTransaction) -> Applied:
        return Applied(
            transaction_id=transaction.id,
            amount=to_money(transaction.amount),
            balance_before=to_money(transaction.balance_before),
            balance_after=to_money(transaction.balance_after),
            duplicate=True,
        )

    @staticmethod
    def _positive(amount: Decimal | float) -> Decimal:
        value = to_money(amount)
        if value <= 0:
            raise CraftException(
                MessageCode.INVALID_AMOUNT,
                status.HTTP_400_BAD_REQUEST,
                details={"amount": str(amount)},
            )
        return value
