"""Tests for AI model pricing."""

from decimal import Decimal

import pytest

from src.modules.billing.constants import (
    DEFAULT_MODEL_PRICING,
    MODEL_PRICING,
    calculate_ai_cost,
    get_model_pricing,
    to_money,
)


def test_known_model_pricing():
    assert get_model_pricing("gpt-5") == MODEL_PRICING["gpt-5"]


def test_provider_prefix_is_optional():
    assert get_model_pricing("claude-sonnet-4.5") == MODEL_PRICING[
        "anthropic/claude-sonnet-4.5"
    ]
    assert get_model_pricing("openai/gpt-5-mini") == MODEL_PRICING["gpt-5-mini"]


def test_unknown_model_uses_default_pricing():
    assert get_model_pricing("some-new-model") == DEFAULT_MODEL_PRICING
    # 1M input at $1 plus 1M output at $3
    assert calculate_ai_cost("some-new-model", 1_000_000, 1_000_000) == Decimal("4")


@pytest.mark.parametrize(
    "model,input_tokens,output_tokens,expected",
    [
        ("anthropic/claude-sonnet-4.5", 1000, 1000, Decimal("0.018")),
        ("x-ai/grok-4-fast", 10, 0, Decimal("0.000001")),
        ("gpt-5", 0, 1, Decimal("0.00001")),
    ],
)
def test_cost_rounds_up_to_ledger_precision(model, input_tokens, output_tokens, expected):
    assert calculate_ai_cost(model, input_tokens, output_tokens) == expected


def test_to_money_quantizes():
    assert to_money(1.1) == Decimal("1.100000")
    assert str(to_money("0.1234567")) == "0.123457"
