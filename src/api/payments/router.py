"""Client-side payment confirmation."""

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse

from src.api.core.decorators.rate_limit import rate_limit
from src.api.core.dependencies import RedisDep
from src.api.core.exceptions.base import CraftException
from src.api.core.messages import MessageCode, get_default_message
from src.api.core.models.rate_limit import RateLimitPolicy
from src.modules.webhooks.signing import (
    WebhookSecretError,
    verify_razorpay_payment_signature,
)
from src.utils.logger import get_client_ip, get_logger
from src.utils.settings.payments import PaymentSettings
from .requests import RazorpayVerifyRequest

logger = get_logger(__name__)

router = APIRouter(prefix="/payments", tags=["payments"])


@router.post("/razorpay/verify")
@rate_limit(RateLimitPolicy.BILLING)
async def verify_razorpay_payment(
    request: Request,
    redis_client: RedisDep,
    body: RazorpayVerifyRequest,
) -> JSONResponse:
    """Check the checkout handshake signature returned to the browser.

    Crediting happens only from the ``payment.captured`` webhook.
    """
    try:
        verified = verify_razorpay_payment_signature(
            body.order_id,
            body.payment_id,
            body.signature,
            PaymentSettings().RAZORPAY_KEY_SECRET.get_secret_value(),
        )
    except WebhookSecretError as e:
        logger.error("razorpay_key_secret_invalid", error=str(e))
        raise CraftException(
            MessageCode.WEBHOOK_NOT_CONFIGURED, status.HTTP_500_INTERNAL_SERVER_ERROR
        )

    if not verified:
        logger.warning(
            "razorpay_payment_signature_rejected",
            order_id=body.order_id,
            payment_id=body.payment_id,
            ip_address=get_client_ip(request),
        )
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={
                "verified": False,
                "message_code": MessageCode.PAYMENT_VERIFICATION_FAILED.value,
                "message": get_default_message(MessageCode.PAYMENT_VERIFICATION_FAILED),
            },
        )

    logger.info(
        "razorpay_payment_verified", order_id=body.order_id, payment_id=body.payment_id
    )
    return JSONResponse(
        status_code=status.HTTP_200_OK,
        content={
            "verified": True,
            "order_id": body.order_id,
            "payment_id": body.payment_id,
        },
    )
