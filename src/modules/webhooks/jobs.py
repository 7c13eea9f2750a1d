"""Worker-side processing of queued webhook events."""

import asyncio

import structlog
from rq import get_current_job
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.database.connection import create_worker_engine
from src.database.models import WebhookEventStatus, WebhookProvider
from src.modules.webhooks.events import parse_webhook_event
from src.modules.webhooks.handlers import dispatch_event
from src.modules.webhooks.service import WebhookEventService
from src.utils.logger import get_logger

logger = get_logger(__name__)


async def run_webhook_event(
    session_factory: async_sessionmaker[AsyncSession],
    event_id: str,
    event_type: str,
    payload: dict,
    final_attempt: bool = True,
) -> WebhookEventStatus:
    """Apply one event and record the outcome on its ``webhook_events`` row.

    Already completed events are skipped. Handler errors mark the row FAILED
    and propagate so the queue can schedule a retry. Only the last attempt
    of a delivery cycle adds to ``retry_count``.
    """
    async with session_factory() as db:
        service = WebhookEventService(db)
        stored = await service.get_event(event_id)
        if stored is None:
            raise LookupError(f"Webhook event {event_id} was never logged")
        if stored.status == WebhookEventStatus.COMPLETED:
            logger.info("webhook_event_already_processed")
            return WebhookEventStatus.COMPLETED

        provider = WebhookProvider(stored.provider)
        await service.update_webhook_event_status(
            event_id, WebhookEventStatus.PROCESSING
        )

        try:
            event = parse_webhook_event(provider, payload)
            await dispatch_event(db, event)
        except Exception as e:
            await db.rollback()
            await service.update_webhook_event_status(
                event_id,
                WebhookEventStatus.FAILED,
                error_message=str(e),
                count_failure=final_attempt,
            )
            logger.error("webhook_event_failed", error=str(e), exc_info=True)
            raise

        await service.update_webhook_event_status(
            event_id, WebhookEventStatus.COMPLETED
        )
        logger.info("webhook_event_processed", provider=provider)
        return WebhookEventStatus.COMPLETED


async def _run_in_fresh_engine(
    event_id: str, event_type: str, payload: dict, final_attempt: bool
) -> str:
    engine = create_worker_engine()
    try:
        session_factory = async_sessionmaker(engine, expire_on_commit=False)
        status = await run_webhook_event(
            session_factory, event_id, event_type, payload, final_attempt
        )
        return status.value
    finally:
        await engine.dispose()


def process_webhook_job(
    event_id: str, event_type: str, payload: dict, attempt: int = 0
) -> str:
    """RQ entrypoint. Runs synchronously inside the worker process."""
    job = get_current_job()
    final_attempt = True
    if job is not None:
        # RQ decrements retries_left only after this attempt fails
        final_attempt = not job.retries_left
        attempt = int(job.meta.get("attempt", attempt)) + 1
        job.meta["attempt"] = attempt
        job.save_meta()

    structlog.contextvars.bind_contextvars(
        event_id=event_id, event_type=event_type, attempt=attempt
    )
    try:
        return asyncio.run(
            _run_in_fresh_engine(event_id, event_type, payload, final_attempt)
        )
    except Exception as e:
        if job is not None:
            job.meta["last_error"] = str(e)
            job.save_meta()
        raise
    finally:
        structlog.contextvars.unbind_contextvars("event_id", "event_type", "attempt")
