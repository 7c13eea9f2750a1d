from decimal import Decimal

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select

from src.api.core.messages import MessageCode
from src.database.models import AICreditUsage, User
from src.modules.billing.ledger import BalanceLedgerService
from tests.utils.assertions import (
    assert_authentication_error,
    assert_error_response,
    assert_success_response,
)


@pytest.mark.asyncio
async def test_balance_requires_authentication(public_client: AsyncClient):
    response = await public_client.get("/v1/balance")

    assert_authentication_error(response)


@pytest.mark.asyncio
async def test_invalid_token_is_reported(public_client: AsyncClient):
    response = await public_client.get(
        "/v1/balance", headers={"Authorization": "Bearer not-a-token"}
    )

    assert_error_response(response, MessageCode.INVALID_TOKEN, 401)


@pytest.mark.asyncio
async def test_balance_summary(db_session, test_user, authorized_client: AsyncClient):
    ledger = BalanceLedgerService(db_session)
    await ledger.credit(test_user.id, Decimal("25"), reference_id="polar:order:ord_1")
    await ledger.charge_ai_usage(test_user.id, "gpt-5", 1000, 500)

    response = await authorized_client.get("/v1/balance")

    data = assert_success_response(response, MessageCode.BALANCE_RETRIEVED)
    assert data["user_id"] == str(test_user.id)
    assert data["currency"] == "USD"
    assert Decimal(data["balance"]) == Decimal("24.99375")
    assert Decimal(data["lifetime_credited"]) == Decimal("25")
    assert Decimal(data["lifetime_spent"]) == Decimal("0.00625")
    assert data["last_transaction_at"] is not None


@pytest.mark.asyncio
async def test_charge_ai_usage(
    db_session, session_factory, user_factory, client_factory
):
    user = await user_factory.create_async(db_session, account_balance=Decimal("1"))

    async with client_factory(user) as client:
        response = await client.post(
            "/v1/balance/usage/ai",
            json={
                "model": "gpt-5",
                "input_tokens": 1000,
                "output_tokens": 500,
                "project_id": "proj_1",
            },
        )

    data = assert_success_response(response, MessageCode.BALANCE_CHARGED)
    assert Decimal(data["amount"]) == Decimal("0.00625")
    assert Decimal(data["balance_before"]) == Decimal("1")
    assert Decimal(data["balance_after"]) == Decimal("0.99375")

    async with session_factory() as session:
        usage = await session.scalar(
            select(AICreditUsage).where(AICreditUsage.user_id == user.id)
        )
        assert usage.project_id == "proj_1"
        assert usage.total_tokens == 1500


@pytest.mark.asyncio
async def test_charge_ai_usage_insufficient_balance(
    session_factory, test_user, authorized_client: AsyncClient
):
    response = await authorized_client.post(
        "/v1/balance/usage/ai",
        json={"model": "gpt-5", "input_tokens": 1000, "output_tokens": 500},
    )

    body = assert_error_response(response, MessageCode.INSUFFICIENT_BALANCE, 402)
    assert body["details"]["balance"] == 0
    assert body["details"]["required"] == pytest.approx(0.00625)

    async with session_factory() as session:
        assert await session.scalar(select(func.count(AICreditUsage.id))) == 0
        user = await session.get(User, test_user.id)
        assert Decimal(user.account_balance) == Decimal("0")


@pytest.mark.asyncio
async def test_charge_rejects_negative_tokens(authorized_client: AsyncClient):
    response = await authorized_client.post(
        "/v1/balance/usage/ai",
        json={"model": "gpt-5", "input_tokens": -1, "output_tokens": 0},
    )

    assert_error_response(response, MessageCode.INVALID_INPUT, 422)


@pytest.mark.asyncio
async def test_check_balance(db_session, user_factory, client_factory):
    user = await user_factory.create_async(db_session, account_balance=Decimal("5"))

    async with client_factory(user) as client:
        enough = await client.post("/v1/balance/check", json={"estimated_cost": "4.5"})
        too_much = await client.post("/v1/balance/check", json={"estimated_cost": "5.01"})

    assert assert_success_response(enough)["allowed"] is True
    data = assert_success_response(too_much)
    assert data["allowed"] is False
    assert Decimal(data["required"]) == Decimal("5.01")


@pytest.mark.asyncio
async def test_check_balance_is_rate_limited(authorized_client: AsyncClient):
    for _ in range(10):
        response = await authorized_client.post(
            "/v1/balance/check", json={"estimated_cost": "1"}
        )
        assert response.status_code == 200

    response = await authorized_client.post(
        "/v1/balance/check", json={"estimated_cost": "1"}
    )

    body = assert_error_response(response, MessageCode.RATE_LIMIT_EXCEEDED, 429)
    assert body["details"]["policy"] == "billing"
    assert response.headers["X-RateLimit-Limit"] == "10"
    assert response.headers["X-RateLimit-Remaining"] == "0"
    assert int(response.headers["Retry-After"]) > 0


@pytest.mark.asyncio
async def test_transactions_are_paginated_newest_first(
    db_session, test_user, authorized_client: AsyncClient
):
    ledger = BalanceLedgerService(db_session)
    for n in range(3):
        await ledger.credit(test_user.id, Decimal(n + 1), reference_id=f"ref_{n}")

    first_page = await authorized_client.get(
        "/v1/balance/transactions", params={"limit": 2}
    )
    last_page = await authorized_client.get(
        "/v1/balance/transactions", params={"limit": 2, "offset": 2}
    )

    data = assert_success_response(first_page)
    assert [item["reference_id"] for item in data["items"]] == ["ref_2", "ref_1"]
    assert data["pagination"] == {"total": 3, "limit": 2, "offset": 0, "has_more": True}
    last = assert_success_response(last_page)
    assert [item["reference_id"] for item in last["items"]] == ["ref_0"]
    assert last["pagination"]["has_more"] is False
