import pytest
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from src.modules.analytics.service import AnalyticsService


@pytest.mark.asyncio
async def test_usage_summary_counts_only_window(db_session, user_factory, usage_factory):
    user = await user_factory.create_async(db_session)
    other = await user_factory.create_async(db_session)
    now = datetime.now(timezone.utc)

    await usage_factory.create_async(
        db_session,
        user_id=user.id,
        input_tokens=100,
        output_tokens=50,
        provider_cost_usd=Decimal("0.5"),
        created_at=now - timedelta(days=1),
    )
    await usage_factory.create_async(
        db_session,
        user_id=other.id,
        input_tokens=200,
        output_tokens=100,
        provider_cost_usd=Decimal("0.25"),
        created_at=now - timedelta(days=2),
    )
    # Outside a 7 day window
    await usage_factory.create_async(
        db_session,
        user_id=user.id,
        provider_cost_usd=Decimal("9"),
        created_at=now - timedelta(days=20),
    )

    summary = await AnalyticsService(db_session).get_usage_summary(days=7)

    assert summary["total_calls"] == 2
    assert summary["input_tokens"] == 300
    assert summary["output_tokens"] == 150
    assert summary["total_tokens"] == 450
    assert summary["total_cost_usd"] == Decimal("0.75")
    assert summary["unique_users"] == 2


@pytest.mark.asyncio
async def test_model_breakdown_and_top_users(db_session, user_factory, usage_factory):
    heavy = await user_factory.create_async(db_session, email="heavy@example.com")
    light = await user_factory.create_async(db_session, email="light@example.com")

    for _ in range(3):
        await usage_factory.create_async(
            db_session,
            user_id=heavy.id,
            model="anthropic/claude-sonnet-4.5",
            provider_cost_usd=Decimal("1"),
        )
    await usage_factory.create_async(
        db_session, user_id=light.id, model="gpt-5-mini", provider_cost_usd=Decimal("0.1")
    )
    service = AnalyticsService(db_session)

    models = await service.get_model_breakdown(days=30)
    top_users = await service.get_top_users(days=30, limit=1)

    assert [row["model"] for row in models] == [
        "anthropic/claude-sonnet-4.5",
        "gpt-5-mini",
    ]
    assert models[0]["calls"] == 3
    assert models[0]["cost_usd"] == Decimal("3")
    assert top_users == [
        {
            "user_id": str(heavy.id),
            "email": "heavy@example.com",
            "calls": 3,
            "cost_usd": Decimal("3"),
        }
    ]


@pytest.mark.asyncio
async def test_empty_window(db_session):
    summary = await AnalyticsService(db_session).get_usage_summary(days=1)

    assert summary["total_calls"] == 0
    assert summary["total_cost_usd"] == Decimal("0")
    assert await AnalyticsService(db_session).get_model_breakdown(days=1) == []
