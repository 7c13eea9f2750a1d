"""Tests for the prepaid balance ledger."""

from decimal import Decimal

import pytest
from sqlalchemy import func, select

from src.api.core.exceptions.base import CraftException
from src.api.core.messages import MessageCode
from src.database.models import (
    AICreditUsage,
    BalanceTransaction,
    BalanceTransactionType,
    User,
)
from src.modules.billing.ledger import (
    Applied,
    BalanceLedgerService,
    InsufficientBalance,
)
from tests.utils.assertions import assert_craft_exception


async def _balance(session_factory, user_id) -> Decimal:
    async with session_factory() as session:
        return await BalanceLedgerService(session).get_balance(user_id)


async def _ledger_rows(session_factory, user_id) -> list[BalanceTransaction]:
    async with session_factory() as session:
        result = await session.execute(
            select(BalanceTransaction)
            .where(BalanceTransaction.user_id == user_id)
            .order_by(BalanceTransaction.created_at)
        )
        return list(result.scalars().all())


@pytest.mark.asyncio
async def test_deduct_within_balance(db_session, session_factory, user_factory):
    user = await user_factory.create_async(db_session, account_balance=Decimal("10"))

    result = await BalanceLedgerService(db_session).deduct(
        user.id, Decimal("2.5"), BalanceTransactionType.AI_USAGE, description="call"
    )

    assert isinstance(result, Applied)
    assert result.amount == Decimal("-2.5")
    assert result.balance_before == Decimal("10")
    assert result.balance_after == Decimal("7.5")
    assert await _balance(session_factory, user.id) == Decimal("7.5")

    rows = await _ledger_rows(session_factory, user.id)
    assert len(rows) == 1
    assert rows[0].type == BalanceTransactionType.AI_USAGE
    assert Decimal(rows[0].amount) == Decimal("-2.5")
    assert Decimal(rows[0].balance_after) == Decimal("7.5")


@pytest.mark.asyncio
async def test_deduct_beyond_balance_returns_insufficient(
    db_session, session_factory, user_factory
):
    user = await user_factory.create_async(db_session, account_balance=Decimal("1"))
    user_id = user.id

    result = await BalanceLedgerService(db_session).deduct(
        user_id, Decimal("1.000001"), BalanceTransactionType.AI_USAGE
    )

    assert isinstance(result, InsufficientBalance)
    assert result.balance == Decimal("1")
    assert result.required == Decimal("1.000001")
    assert result.to_details()["error"] == "insufficient_balance"
    assert await _balance(session_factory, user_id) == Decimal("1")
    assert await _ledger_rows(session_factory, user_id) == []


@pytest.mark.asyncio
async def test_deductions_from_separate_sessions_never_overdraw(
    db_session, session_factory, user_factory
):
    """Two $6 deductions against $10: the stale second caller is refused."""
    user = await user_factory.create_async(db_session, account_balance=Decimal("10"))

    async with session_factory() as first, session_factory() as second:
        # Both callers observed $10 before either deducted
        for session in (first, second):
            loaded = await session.get(User, user.id)
            assert Decimal(loaded.account_balance) == Decimal("10")

        results = [
            await BalanceLedgerService(first).deduct(
                user.id, Decimal("6"), BalanceTransactionType.AI_USAGE
            ),
            await BalanceLedgerService(second).deduct(
                user.id, Decimal("6"), BalanceTransactionType.AI_USAGE
            ),
        ]

    assert sum(isinstance(r, Applied) for r in results) == 1
    assert sum(isinstance(r, InsufficientBalance) for r in results) == 1
    assert await _balance(session_factory, user.id) == Decimal("4")
    assert len(await _ledger_rows(session_factory, user.id)) == 1


@pytest.mark.asyncio
async def test_credit_with_reference_is_applied_once(
    db_session, session_factory, user_factory
):
    user = await user_factory.create_async(db_session)
    ledger = BalanceLedgerService(db_session)

    first = await ledger.credit(
        user.id, Decimal("10"), reference_id="polar:order:ord_1"
    )
    second = await ledger.credit(
        user.id, Decimal("10"), reference_id="polar:order:ord_1"
    )

    assert first.duplicate is False
    assert second.duplicate is True
    assert second.transaction_id == first.transaction_id
    assert await _balance(session_factory, user.id) == Decimal("10")
    assert len(await _ledger_rows(session_factory, user.id)) == 1


@pytest.mark.asyncio
async def test_credit_unknown_user_raises(db_session):
    from uuid import uuid4

    with pytest.raises(CraftException) as exc_info:
        await BalanceLedgerService(db_session).credit(uuid4(), Decimal("1"))

    assert_craft_exception(exc_info.value, MessageCode.USER_NOT_FOUND, 404)


@pytest.mark.asyncio
@pytest.mark.parametrize("amount", [Decimal("0"), Decimal("-5")])
async def test_non_positive_amounts_are_rejected(db_session, user_factory, amount):
    user = await user_factory.create_async(db_session, account_balance=Decimal("10"))

    with pytest.raises(CraftException) as exc_info:
        await BalanceLedgerService(db_session).deduct(
            user.id, amount, BalanceTransactionType.ADJUSTMENT
        )

    assert_craft_exception(exc_info.value, MessageCode.INVALID_AMOUNT, 400)


@pytest.mark.asyncio
async def test_check_balance(db_session, user_factory):
    user = await user_factory.create_async(db_session, account_balance=Decimal("3"))
    ledger = BalanceLedgerService(db_session)

    allowed = await ledger.check_balance(user.id, Decimal("3"))
    refused = await ledger.check_balance(user.id, 3.01)

    assert allowed.allowed is True
    assert refused.allowed is False
    assert refused.required == Decimal("3.01")


@pytest.mark.asyncio
async def test_charge_ai_usage_records_usage_with_deduction(
    db_session, session_factory, user_factory
):
    user = await user_factory.create_async(db_session, account_balance=Decimal("1"))

    result = await BalanceLedgerService(db_session).charge_ai_usage(
        user.id, "gpt-5", input_tokens=1000, output_tokens=500, project_id="proj_1"
    )

    # 1000 * 1.25 / 1M + 500 * 10 / 1M
    assert isinstance(result, Applied)
    assert result.amount == Decimal("-0.00625")
    assert await _balance(session_factory, user.id) == Decimal("0.99375")

    async with session_factory() as session:
        usage = (
            await session.scalars(
                select(AICreditUsage).where(AICreditUsage.user_id == user.id)
            )
        ).all()
    assert len(usage) == 1
    assert usage[0].total_tokens == 1500
    assert Decimal(usage[0].provider_cost_usd) == Decimal("0.00625")


@pytest.mark.asyncio
async def test_refused_ai_charge_records_no_usage(
    db_session, session_factory, user_factory
):
    user = await user_factory.create_async(db_session, account_balance=Decimal("0"))
    user_id = user.id

    result = await BalanceLedgerService(db_session).charge_ai_usage(
        user_id, "gpt-5", input_tokens=1000, output_tokens=500
    )

    assert isinstance(result, InsufficientBalance)
    async with session_factory() as session:
        count = await session.scalar(
            select(func.count(AICreditUsage.id)).where(
                AICreditUsage.user_id == user_id
            )
        )
    assert count == 0


@pytest.mark.asyncio
async def test_balance_summary_totals(db_session, user_factory):
    user = await user_factory.create_async(db_session)
    ledger = BalanceLedgerService(db_session)

    await ledger.credit(user.id, Decimal("20"), reference_id="razorpay:payment:pay_1")
    await ledger.deduct(user.id, Decimal("5"), BalanceTransactionType.SANDBOX_USAGE)

    summary = await ledger.get_balance_summary(user.id)

    assert summary["balance"] == Decimal("15")
    assert summary["lifetime_credited"] == Decimal("20")
    assert summary["lifetime_spent"] == Decimal("5")
    assert summary["last_transaction_at"] is not None
