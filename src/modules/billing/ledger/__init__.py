from .results import Applied, BalanceCheck, InsufficientBalance, LedgerResult
from .service import BalanceLedgerService

__all__ = [
    "Applied",
    "BalanceCheck",
    "BalanceLedgerService",
    "InsufficientBalance",
    "LedgerResult",
]
