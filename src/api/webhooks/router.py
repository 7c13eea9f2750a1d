"""Payment provider webhook endpoints.

Both endpoints verify the signature over the raw body, record the event
idempotently and hand it to the queue. Business effects happen in the worker.
"""

import orjson
from fastapi import APIRouter, Request, status
from sqlalchemy.exc import SQLAlchemyError
from starlette.concurrency import run_in_threadpool

from src.api.core.dependencies import WebhookEventServiceDep
from src.api.core.exceptions.base import CraftException
from src.api.core.messages import MessageCode
from src.database.models import WebhookEventStatus, WebhookProvider
from src.modules.webhooks.events import (
    WebhookPayloadError,
    get_event_type,
    parse_webhook_event,
)
from src.modules.webhooks.queue import enqueue_webhook_event
from src.modules.webhooks.service import WebhookEventService
from src.modules.webhooks.signing import (
    StandardWebhookVerifier,
    WebhookSecretError,
    WebhookTimestampError,
    WebhookVerificationError,
    verify_razorpay_webhook_signature,
)
from src.utils.logger import get_client_ip, get_logger
from src.utils.settings.payments import PaymentSettings
from .schemas import WebhookAck

logger = get_logger(__name__)

router = APIRouter(prefix="/webhooks", tags=["webhooks"])


async def _read_body(request: Request) -> bytes:
    payload = await request.body()

    if not payload:
        raise CraftException(
            MessageCode.WEBHOOK_PAYLOAD_INVALID,
            status.HTTP_400_BAD_REQUEST,
            details={"description": "Empty webhook payload"},
        )

    if len(payload) > PaymentSettings().WEBHOOK_MAX_PAYLOAD_BYTES:
        raise CraftException(
            MessageCode.WEBHOOK_PAYLOAD_INVALID,
            status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            details={"description": "Webhook payload too large"},
        )

    return payload


def _not_configured(provider: WebhookProvider, error: Exception) -> CraftException:
    logger.error("webhook_secret_invalid", provider=provider.value, error=str(error))
    return CraftException(
        MessageCode.WEBHOOK_NOT_CONFIGURED, status.HTTP_500_INTERNAL_SERVER_ERROR
    )


def _rejected(
    request: Request, provider: WebhookProvider, error: Exception
) -> CraftException:
    expired = isinstance(error, WebhookTimestampError)
    logger.warning(
        "webhook_signature_rejected",
        provider=provider.value,
        ip_address=get_client_ip(request),
        reason=str(error),
    )
    return CraftException(
        MessageCode.WEBHOOK_TIMESTAMP_EXPIRED if expired else MessageCode.INVALID_SIGNATURE,
        status.HTTP_400_BAD_REQUEST,
    )


def _parse(provider: WebhookProvider, body: bytes) -> tuple[dict, str]:
    try:
        payload = orjson.loads(body)
        if not isinstance(payload, dict):
            raise WebhookPayloadError("Webhook body must be a JSON object")
        event_type = get_event_type(provider, payload)
        # Validates the declared shape; the worker re-parses from the stored payload
        parse_webhook_event(provider, payload)
    except (orjson.JSONDecodeError, WebhookPayloadError) as e:
        logger.warning(
            "webhook_payload_invalid", provider=provider.value, error=str(e)
        )
        raise CraftException(
            MessageCode.WEBHOOK_PAYLOAD_INVALID,
            status.HTTP_400_BAD_REQUEST,
            details={"description": str(e)},
        )
    return payload, event_type


async def _accept(
    service: WebhookEventService,
    provider: WebhookProvider,
    event_id: str,
    event_type: str,
    payload: dict,
) -> WebhookAck:
    try:
        event, duplicate = await service.log_webhook_event(
            provider, event_type, event_id, payload
        )
    except SQLAlchemyError as e:
        # 500 makes the provider redeliver
        logger.error(
            "webhook_event_log_failed",
            provider=provider.value,
            event_id=event_id,
            error=str(e),
        )
        raise CraftException(
            MessageCode.INTERNAL_ERROR, status.HTTP_500_INTERNAL_SERVER_ERROR
        )

    if not duplicate or event.status != WebhookEventStatus.COMPLETED:
        try:
            await run_in_threadpool(
                enqueue_webhook_event, event_id, event_type, payload
            )
        except Exception as e:
            logger.error(
                "webhook_enqueue_failed",
                provider=provider.value,
                event_id=event_id,
                error=str(e),
            )
            raise CraftException(
                MessageCode.QUEUE_UNAVAILABLE, status.HTTP_500_INTERNAL_SERVER_ERROR
            )

    logger.info(
        "webhook_received",
        provider=provider.value,
        event_id=event_id,
        event_type=event_type,
        duplicate=duplicate,
    )
    return WebhookAck(received=True, event_id=event_id, duplicate=duplicate)


@router.post("/polar", response_model=WebhookAck)
async def polar_webhook(request: Request, service: WebhookEventServiceDep):
    """Polar deliveries, signed with Standard Webhooks."""
    provider = WebhookProvider.POLAR
    body = await _read_body(request)
    settings = PaymentSettings()

    try:
        verifier = StandardWebhookVerifier(
            settings.POLAR_WEBHOOK_SECRET.get_secret_value(),
            tolerance_seconds=settings.WEBHOOK_TOLERANCE_SECONDS,
        )
    except WebhookSecretError as e:
        raise _not_configured(provider, e)

    event_id = request.headers.get("webhook-id")
    try:
        verifier.verify(
            body,
            event_id,
            request.headers.get("webhook-timestamp"),
            request.headers.get("webhook-signature"),
        )
    except WebhookVerificationError as e:
        raise _rejected(request, provider, e)

    payload, event_type = _parse(provider, body)
    return await _accept(service, provider, event_id, event_type, payload)


@router.post("/razorpay", response_model=WebhookAck)
async def razorpay_webhook(request: Request, service: WebhookEventServiceDep):
    """Razorpay deliveries, signed with a hex HMAC of the raw body."""
    provider = WebhookProvider.RAZORPAY
    body = await _read_body(request)

    try:
        valid = verify_razorpay_webhook_signature(
            body,
            request.headers.get("x-razorpay-signature"),
            PaymentSettings().RAZORPAY_WEBHOOK_SECRET.get_secret_value(),
        )
    except WebhookSecretError as e:
        raise _not_configured(provider, e)

    if not valid:
        raise _rejected(
            request, provider, WebhookVerificationError("Signature mismatch")
        )

    payload, event_type = _parse(provider, body)
    event_id = request.headers.get("x-razorpay-event-id") or (
        f"{payload.get('account_id')}_{payload.get('created_at')}_{event_type}"
    )
    return await _accept(service, provider, event_id, event_type, payload)
