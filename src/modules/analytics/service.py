from datetime import timedelta

from sqlalchemy import desc, func, select

from src.core.base import BaseService
from src.database.models import AICreditUsage, User
from src.modules.billing.constants import to_money
from src.utils.time import utcnow


class AnalyticsService(BaseService):
    """Read-only aggregations over the AI usage log."""

    async def get_usage_summary(self, days: int = 30) -> dict:
        start_date = utcnow() - timedelta(days=days)
        result = await self.db.execute(
            select(
                func.count(AICreditUsage.id),
                func.coalesce(func.sum(AICreditUsage.input_tokens), 0),
                func.coalesce(func.sum(AICreditUsage.output_tokens), 0),
                func.coalesce(func.sum(AICreditUsage.provider_cost_usd), 0),
                func.count(func.distinct(AICreditUsage.user_id)),
            ).where(AICreditUsage.created_at >= start_date)
        )
        calls, input_tokens, output_tokens, cost, users = result.one()
        return {
            "days": days,
            "total_calls": calls,
            "input_tokens": int(input_tokens),
            "output_tokens": int(output_tokens),
            "total_tokens": int(input_tokens) + int(output_tokens),
            "total_cost_usd": to_money(cost),
            "unique_users": users,
        }

    async def get_model_breakdown(self, days: int = 30) -> list[dict]:
        """Per-model call counts, tokens and cost, most expensive first."""
        start_date = utcnow() - timedelta(days=days)
        cost = func.coalesce(func.sum(AICreditUsage.provider_cost_usd), 0)
        result = await self.db.execute(
            select(
                AICreditUsage.model,
                func.count(AICreditUsage.id),
                func.coalesce(func.sum(AICreditUsage.total_tokens), 0),
                cost.label("cost"),
            )
            .where(AICreditUsage.created_at >= start_date)
            .group_by(AICreditUsage.model)
            .order_by(desc("cost"))
        )
        return [
            {
                "model": model,
                "calls": calls,
                "total_tokens": int(tokens),
                "cost_usd": to_money(model_cost),
            }
            for model, calls, tokens, model_cost in result.all()
        ]

    async def get_top_users(self, days: int = 30, limit: int = 10) -> list[dict]:
        start_date = utcnow() - timedelta(days=days)
        cost = func.coalesce(func.sum(AICreditUsage.provider_cost_usd), 0)
        result = await self.db.execute(
            select(
                User.id,
                User.email,
                func.count(AICreditUsage.id),
                cost.label("cost"),
            )
            .select_from(AICreditUsage)
            .join(User, User.id == AICreditUsage.user_id)
            .where(AICreditUsage.created_at >= start_date)
            .group_by(User.id, User.email)
            .order_by(desc("cost"))
            .limit(limit)
        )
        return [
            {
                "user_id": str(user_id),
                "email": email,
                "calls": calls,
                "cost_usd": to_money(user_cost),
            }
            for user_id, email, calls, user_cost in result.all()
        ]
