"""Persistence of inbound webhook events."""

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError

from src.core.base import BaseService
from src.database.models import WebhookEvent, WebhookEventStatus, WebhookProvider
from src.utils.time import utcnow

# Failed events that exhausted fewer delivery cycles than this are eligible
# for batch retry
BATCH_RETRY_MAX_RETRY_COUNT = 3


class WebhookEventService(BaseService):
    async def log_webhook_event(
        self,
        provider: WebhookProvider,
        event_type: str,
        event_id: str,
        payload: dict,
    ) -> tuple[WebhookEvent, bool]:
        """Record a delivery. Returns the stored row and whether it was already known.

        The unique constraint on ``event_id`` is the dedup mechanism: a
        conflicting insert is a redelivery, not an error.
        """
        event = WebhookEvent(
            provider=provider,
            event_id=event_id,
            event_type=event_type,
            payload=payload,
            status=WebhookEventStatus.PENDING,
        )
        self.db.add(event)
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            existing = await self.get_event(event_id)
            if existing is None:
                raise
            self.logger.info(
                "webhook_event_duplicate",
                event_id=event_id,
                event_type=event_type,
                status=existing.status,
            )
            return existing, True

        return event, False

    async def update_webhook_event_status(
        self,
        event_id: str,
        status: WebhookEventStatus,
        error_message: str | None = None,
        count_failure: bool = True,
    ) -> bool:
        """Move an event to ``status``. COMPLETED rows never change again.

        ``retry_count`` counts exhausted delivery cycles. Failures the queue
        will still retry on its own pass ``count_failure=False``.
        """
        values: dict = {"status": status, "updated_at": utcnow()}
        if status == WebhookEventStatus.FAILED:
            if count_failure:
                values["retry_count"] = WebhookEvent.retry_count + 1
            values["error_message"] = error_message
            values["processed_at"] = utcnow()
        elif status == WebhookEventStatus.COMPLETED:
            values["error_message"] = None
            values["processed_at"] = utcnow()

        result = await self.db.execute(
            update(WebhookEvent)
            .where(
                WebhookEvent.event_id == event_id,
                WebhookEvent.status != WebhookEventStatus.COMPLETED,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()
        return result.rowcount == 1

    async def is_webhook_event_processed(self, event_id: str) -> bool:
        status = await self.db.scalar(
            select(WebhookEvent.status).where(WebhookEvent.event_id == event_id)
        )
        return status == WebhookEventStatus.COMPLETED

    async def get_event(self, event_id: str) -> WebhookEvent | None:
        return await self.db.scalar(
            select(WebhookEvent).where(WebhookEvent.event_id == event_id)
        )

    async def list_failed_webhook_events(self, limit: int = 100) -> list[WebhookEvent]:
        result = await self.db.execute(
            select(WebhookEvent)
            .where(
                WebhookEvent.status == WebhookEventStatus.FAILED,
                WebhookEvent.retry_count < BATCH_RETRY_MAX_RETRY_COUNT,
            )
            .order_by(WebhookEvent.created_at)
            .limit(limit)
        )
        return list(result.scalars().all())

    async def list_events(
        self, status: WebhookEventStatus | None = None, limit: int = 50
    ) -> list[WebhookEvent]:
        query = select(WebhookEvent).order_by(WebhookEvent.created_at.desc())
        if status is not None:
            query = query.where(WebhookEvent.status == status)
        result = await self.db.execute(query.limit(limit))
        return list(result.scalars().all())
