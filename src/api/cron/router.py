"""Scheduler-triggered maintenance jobs.

Every call must present ``CRON_SECRET`` as a bearer token or ``?secret=``.
"""

import hmac

from fastapi import APIRouter, Request, status

from src.api.core.dependencies import ReferralServiceDep, SubscriptionPeriodServiceDep
from src.api.core.exceptions.base import CraftException
from src.api.core.messages import MessageCode
from src.utils.logger import get_client_ip, get_logger
from src.utils.settings.cron import CronSettings
from src.utils.time import utcnow
from .schemas import (
    AwardReferralsResponse,
    ResetCreditsResponse,
    ResetError,
    ResetStats,
)

logger = get_logger(__name__)

router = APIRouter(prefix="/cron", tags=["cron"])


def verify_cron_secret(request: Request) -> None:
    expected = CronSettings().CRON_SECRET.get_secret_value()

    authorization = request.headers.get("Authorization", "")
    scheme, _, token = authorization.partition(" ")
    candidates = [request.query_params.get("secret") or ""]
    if scheme.lower() == "bearer":
        candidates.append(token)

    # Either credential alone is enough
    authorized = bool(expected) and any(
        hmac.compare_digest(candidate.encode(), expected.encode())
        for candidate in candidates
        if candidate
    )
    if not authorized:
        logger.warning(
            "cron_unauthorized",
            path=request.url.path,
            ip_address=get_client_ip(request),
            configured=bool(expected),
        )
        raise CraftException(MessageCode.CRON_UNAUTHORIZED, status.HTTP_401_UNAUTHORIZED)


@router.api_route(
    "/reset-credits",
    methods=["GET", "POST"],
    response_model=ResetCreditsResponse,
    response_model_by_alias=True,
)
async def reset_credits(
    request: Request, periods: SubscriptionPeriodServiceDep
) -> ResetCreditsResponse:
    """Advance every expired ACTIVE subscription into its next period."""
    verify_cron_secret(request)

    try:
        summary = await periods.reset_expired_periods()
    except Exception as e:
        logger.error("credit_reset_scan_failed", error=str(e), exc_info=True)
        raise CraftException(
            MessageCode.INTERNAL_ERROR,
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            details={"description": "Failed to scan subscriptions"},
        )

    return ResetCreditsResponse(
        success=True,
        timestamp=utcnow(),
        stats=ResetStats(
            total_found=summary.total_found,
            success_count=summary.success_count,
            error_count=summary.error_count,
            skipped_count=summary.skipped_count,
        ),
        errors=[
            ResetError(
                subscription_id=error.subscription_id,
                user_id=error.user_id,
                error=error.error,
            )
            for error in summary.errors
        ]
        or None,
    )


@router.api_route(
    "/award-referrals",
    methods=["GET", "POST"],
    response_model=AwardReferralsResponse,
    response_model_by_alias=True,
)
async def award_referrals(
    request: Request, referrals: ReferralServiceDep
) -> AwardReferralsResponse:
    """Create this month's referral credits for every referrer."""
    verify_cron_secret(request)

    summary = await referrals.award_monthly_referral_credits()
    return AwardReferralsResponse(
        success=True,
        users_processed=summary.users_processed,
        total_credits_awarded=summary.total_credits_awarded,
        timestamp=utcnow(),
    )
