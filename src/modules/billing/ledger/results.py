"""Outcomes of ledger operations.

Running out of balance is an expected business outcome, so it is returned as
a value instead of raised. Infrastructure faults still raise.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import ClassVar
from uuid import UUID


@dataclass(frozen=True)
class Applied:
    transaction_id: UUID
    amount: Decimal
    balance_before: Decimal
    balance_after: Decimal
    # True when the reference id had already been applied
    duplicate: bool = False

    ok: ClassVar[bool] = True


@dataclass(frozen=True)
class InsufficientBalance:
    balance: Decimal
    required: Decimal

    ok: ClassVar[bool] = False
    kind: ClassVar[str] = "insufficient_balance"

    def to_details(self) -> dict:
        return {
            "error": self.kind,
            "balance": float(self.balance),
            "required": float(self.required),
        }


LedgerResult = Applied | InsufficientBalance


@dataclass(frozen=True)
class BalanceCheck:
    allowed: bool
    balance: Decimal
    required: Decimal
