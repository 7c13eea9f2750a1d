from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel


class BalanceSummaryModel(BaseModel):
    user_id: str
    balance: Decimal
    currency: str
    lifetime_credited: Decimal
    lifetime_spent: Decimal
    last_transaction_at: datetime | None


class BalanceCheckModel(BaseModel):
    allowed: bool
    balance: Decimal
    required: Decimal


class BalanceChargeModel(BaseModel):
    transaction_id: str
    amount: Decimal
    balance_before: Decimal
    balance_after: Decimal


class BalanceTransactionModel(BaseModel):
    id: str
    type: str
    amount: Decimal
    balance_before: Decimal
    balance_after: Decimal
    description: str | None
    reference_id: str | None
    created_at: datetime
