"""Balance domain router."""

from fastapi import APIRouter, Query, Request, status

from src.api.core.constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from src.api.core.decorators.rate_limit import rate_limit
from src.api.core.dependencies import (
    BalanceLedgerServiceDep,
    CurrentUserDep,
    RedisDep,
)
from src.api.core.exceptions.base import CraftException
from src.api.core.messages import APIResponse, MessageCode, Paginated, PaginationInfo
from src.api.core.models.rate_limit import RateLimitPolicy
from src.modules.billing.ledger import InsufficientBalance
from .models import (
    BalanceChargeModel,
    BalanceCheckModel,
    BalanceSummaryModel,
    BalanceTransactionModel,
)
from .requests import (
    AIUsageChargeRequest,
    BalanceChargeResponse,
    BalanceCheckRequest,
    BalanceCheckResponse,
    BalanceSummaryResponse,
    BalanceTransactionsResponse,
)

router = APIRouter(prefix="/balance", tags=["balance"])


@router.get("", response_model=BalanceSummaryResponse)
async def get_balance(
    current_user: CurrentUserDep,
    ledger: BalanceLedgerServiceDep,
) -> BalanceSummaryResponse:
    """Balance and lifetime totals. May lag a committed change by a few seconds."""
    summary = await ledger.get_balance_summary(current_user.user.id)
    return APIResponse.success(
        message_code=MessageCode.BALANCE_RETRIEVED,
        data=BalanceSummaryModel(**summary),
    )


@router.post("/check", response_model=BalanceCheckResponse)
@rate_limit(RateLimitPolicy.BILLING)
async def check_balance(
    request: Request,
    redis_client: RedisDep,
    body: BalanceCheckRequest,
    current_user: CurrentUserDep,
    ledger: BalanceLedgerServiceDep,
) -> BalanceCheckResponse:
    check = await ledger.check_balance(current_user.user.id, body.estimated_cost)
    return APIResponse.success(
        data=BalanceCheckModel(
            allowed=check.allowed, balance=check.balance, required=check.required
        )
    )


@router.post("/usage/ai", response_model=BalanceChargeResponse)
async def charge_ai_usage(
    body: AIUsageChargeRequest,
    current_user: CurrentUserDep,
    ledger: BalanceLedgerServiceDep,
) -> BalanceChargeResponse:
    """Charge one AI call. 402 with ``{balance, required}`` when not covered."""
    result = await ledger.charge_ai_usage(
        current_user.user.id,
        model=body.model,
        input_tokens=body.input_tokens,
        output_tokens=body.output_tokens,
        project_id=body.project_id,
        endpoint=body.endpoint,
        call_type=body.call_type,
    )
    if isinstance(result, InsufficientBalance):
        raise CraftException(
            MessageCode.INSUFFICIENT_BALANCE,
            status.HTTP_402_PAYMENT_REQUIRED,
            details=result.to_details(),
        )

    return APIResponse.success(
        message_code=MessageCode.BALANCE_CHARGED,
        data=BalanceChargeModel(
            transaction_id=str(result.transaction_id),
            amount=-result.amount,
            balance_before=result.balance_before,
            balance_after=result.balance_after,
        ),
    )


@router.get("/transactions", response_model=BalanceTransactionsResponse)
async def list_transactions(
    current_user: CurrentUserDep,
    ledger: BalanceLedgerServiceDep,
    limit: int = Query(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    offset: int = Query(default=0, ge=0),
) -> BalanceTransactionsResponse:
    rows, total = await ledger.list_transactions(current_user.user.id, limit, offset)
    items = [
        BalanceTransactionModel(
            id=str(row.id),
            type=row.type,
            amount=row.amount,
            balance_before=row.balance_before,
            balance_after=row.balance_after,
            description=row.description,
            reference_id=row.reference_id,
            created_at=row.created_at,
        )
        for row in rows
    ]
    return APIResponse.success(
        data=Paginated[BalanceTransactionModel](
            items=items,
            pagination=PaginationInfo(
                total=total,
                limit=limit,
                offset=offset,
                has_more=offset + len(items) < total,
            ),
        )
    )
