"""Factory for Plan models."""

import factory
from src.database.models import Plan
from .base import AsyncSQLAlchemyModelFactory, UUIDFactory


class PlanFactory(AsyncSQLAlchemyModelFactory[Plan]):
    """Factory for creating Plan instances."""

    class Meta:
        model = Plan

    id = UUIDFactory()
    name = factory.Sequence(lambda n: f"plan-{n}")
    display_name = factory.Faker("word")
    price_monthly_usd = 20.0
    monthly_credits = 100
    is_active = True
