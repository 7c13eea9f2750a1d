"""Referral endpoints."""

from fastapi import APIRouter, Request
from pydantic import BaseModel, Field

from src.api.core.decorators.rate_limit import rate_limit
from src.api.core.dependencies import CurrentUserDep, RedisDep, ReferralServiceDep
from src.api.core.messages import APIResponse, MessageCode
from src.api.core.models.rate_limit import RateLimitPolicy

router = APIRouter(prefix="/referrals", tags=["referrals"])


class ApplyReferralRequest(BaseModel):
    referral_code: str = Field(min_length=4, max_length=32)


class ReferralAppliedModel(BaseModel):
    referrer_id: str


class MonthlyCreditsModel(BaseModel):
    plan_credits: int
    referral_credits: int
    total_credits: int


@router.post("/apply", response_model=APIResponse[ReferralAppliedModel])
@rate_limit(RateLimitPolicy.AUTH)
async def apply_referral_code(
    request: Request,
    redis_client: RedisDep,
    body: ApplyReferralRequest,
    current_user: CurrentUserDep,
    referrals: ReferralServiceDep,
) -> APIResponse[ReferralAppliedModel]:
    referrer = await referrals.process_referral_signup(
        current_user.user.id, body.referral_code
    )
    return APIResponse.success(
        message_code=MessageCode.UPDATED,
        data=ReferralAppliedModel(referrer_id=str(referrer.id)),
    )


@router.get("/credits", response_model=APIResponse[MonthlyCreditsModel])
async def get_monthly_credits(
    current_user: CurrentUserDep,
    referrals: ReferralServiceDep,
) -> APIResponse[MonthlyCreditsModel]:
    """Plan allowance plus referral credits for the current month (informational)."""
    credits = await referrals.get_user_monthly_credits(current_user.user.id)
    return APIResponse.success(data=MonthlyCreditsModel(**credits))
