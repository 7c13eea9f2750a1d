"""Billing constants: AI model pricing and top-up markers."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_UP, Decimal

# Smallest unit kept by Money columns
MONEY_QUANTUM = Decimal("0.000001")

TOKENS_PER_PRICING_UNIT = Decimal(1_000_000)

# Metadata marker set by checkout for balance purchases
BALANCE_TOPUP_PURCHASE_TYPE = "balance_topup"


@dataclass(frozen=True)
class ModelPricing:
    """USD per one million tokens."""

    input: Decimal
    output: Decimal


MODEL_PRICING: dict[str, ModelPricing] = {
    "anthropic/claude-sonnet-4.5": ModelPricing(Decimal("3"), Decimal("15")),
    "claude-haiku-4.5": ModelPricing(Decimal("1"), Decimal("5")),
    "gpt-5": ModelPricing(Decimal("1.25"), Decimal("10")),
    "gpt-5-mini": ModelPricing(Decimal("0.25"), Decimal("2")),
    "gemini-2.5-flash": ModelPricing(Decimal("0.3"), Decimal("2.5")),
    "x-ai/grok-4-fast": ModelPricing(Decimal("0.05"), Decimal("0.15")),
}

DEFAULT_MODEL_PRICING = ModelPricing(Decimal("1"), Decimal("3"))


def to_money(value: Decimal | int | float | str) -> Decimal:
    """Normalize an amount to the ledger's precision."""
    return Decimal(str(value)).quantize(MONEY_QUANTUM)


def get_model_pricing(model: str) -> ModelPricing:
    """Look up pricing by exact id, then by the id without its provider prefix."""
    if model in MODEL_PRICING:
        return MODEL_PRICING[model]

    bare = model.rsplit("/", 1)[-1]
    for key, pricing in MODEL_PRICING.items():
        if key.rsplit("/", 1)[-1] == bare:
            return pricing
    return DEFAULT_MODEL_PRICING


def calculate_ai_cost(model: str, input_tokens: int, output_tokens: int) -> Decimal:
    """Cost of one call in USD, rounded up to the ledger quantum."""
    pricing = get_model_pricing(model)
    cost = (
        Decimal(input_tokens) / TOKENS_PER_PRICING_UNIT * pricing.input
        + Decimal(output_tokens) / TOKENS_PER_PRICING_UNIT * pricing.output
    )
    return cost.quantize(MONEY_QUANTUM, rounding=ROUND_UP)
