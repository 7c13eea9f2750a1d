"""Balance domain requests and responses."""

from decimal import Decimal

from pydantic import BaseModel, Field

from src.api.core.messages import APIResponse, Paginated
from src.database.models import CallType
from .models import (
    BalanceChargeModel,
    BalanceCheckModel,
    BalanceSummaryModel,
    BalanceTransactionModel,
)


class BalanceCheckRequest(BaseModel):
    estimated_cost: Decimal = Field(ge=0, max_digits=18, decimal_places=6)


class AIUsageChargeRequest(BaseModel):
    model: str = Field(min_length=1, max_length=128)
    input_tokens: int = Field(ge=0)
    output_tokens: int = Field(ge=0)
    project_id: str | None = None
    endpoint: str | None = None
    call_type: CallType = CallType.CHAT


# Response Models
BalanceSummaryResponse = APIResponse[BalanceSummaryModel]
BalanceCheckResponse = APIResponse[BalanceCheckModel]
BalanceChargeResponse = APIResponse[BalanceChargeModel]
BalanceTransactionsResponse = APIResponse[Paginated[BalanceTransactionModel]]
