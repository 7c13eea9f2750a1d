"""Operator endpoints: webhook queue inspection and usage reporting."""

from dataclasses import asdict
from datetime import timedelta

from fastapi import APIRouter, Query, Request, status
from redis.exceptions import RedisError
from starlette.concurrency import run_in_threadpool

from src.api.core.constants import (
    DEFAULT_QUEUE_LIST_LIMIT,
    DEFAULT_USAGE_WINDOW_DAYS,
    MAX_QUEUE_LIST_LIMIT,
    MAX_USAGE_WINDOW_DAYS,
    TOP_USERS_LIMIT,
)
from src.api.core.decorators.admin import admin
from src.api.core.decorators.rate_limit import rate_limit
from src.api.core.dependencies import (
    AnalyticsServiceDep,
    RedisDep,
    WebhookEventServiceDep,
)
from src.api.core.exceptions.base import CraftException
from src.api.core.messages import MessageCode, get_default_message
from src.api.core.models.rate_limit import RateLimitPolicy
from src.database.models import WebhookEventStatus
from src.modules.webhooks.queue import (
    cleanup_webhook_queue,
    enqueue_webhook_event,
    get_completed_webhook_jobs,
    get_failed_webhook_jobs,
    get_webhook_queue_stats,
    retry_webhook_event,
)
from src.modules.webhooks.service import WebhookEventService
from src.utils.logger import get_logger
from .schemas import (
    CleanupAction,
    ModelUsageModel,
    QueueAction,
    QueueActionResponse,
    QueueJobModel,
    QueueJobsResponse,
    QueueStatsModel,
    QueueStatsResponse,
    RetryAction,
    UsageReportResponse,
    UsageTotalsModel,
    UserUsageModel,
    WebhookEventModel,
    WebhookEventsResponse,
)

logger = get_logger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])

QUEUE_VIEWS = ("stats", "failed", "completed")


async def _queue_call(func, *args):
    try:
        return await run_in_threadpool(func, *args)
    except RedisError as e:
        logger.error("webhook_queue_unavailable", error=str(e))
        raise CraftException(
            MessageCode.QUEUE_UNAVAILABLE, status.HTTP_503_SERVICE_UNAVAILABLE
        )


@router.get(
    "/webhook-queue",
    response_model=QueueStatsResponse | QueueJobsResponse,
    response_model_by_alias=True,
)
@admin()
@rate_limit(RateLimitPolicy.ADMIN)
async def get_webhook_queue(
    request: Request,
    redis_client: RedisDep,
    view: str = Query(default="stats"),
    limit: int = Query(default=DEFAULT_QUEUE_LIST_LIMIT, ge=1, le=MAX_QUEUE_LIST_LIMIT),
) -> QueueStatsResponse | QueueJobsResponse:
    if view not in QUEUE_VIEWS:
        raise CraftException(
            MessageCode.INVALID_INPUT,
            status.HTTP_400_BAD_REQUEST,
            details={"description": f"view must be one of {', '.join(QUEUE_VIEWS)}"},
        )

    if view == "stats":
        stats = await _queue_call(get_webhook_queue_stats)
        return QueueStatsResponse(
            stats=QueueStatsModel(**asdict(stats), total=stats.total)
        )

    fetch = get_failed_webhook_jobs if view == "failed" else get_completed_webhook_jobs
    jobs = await _queue_call(fetch, limit)
    return QueueJobsResponse(
        view=view,
        count=len(jobs),
        jobs=[QueueJobModel(**asdict(job)) for job in jobs],
    )


async def _retry_one(service: WebhookEventService, event_id: str) -> bool:
    if await _queue_call(retry_webhook_event, event_id):
        return True

    # The job may have expired from Redis while the row stayed FAILED
    event = await service.get_event(event_id)
    if event is None or event.status != WebhookEventStatus.FAILED:
        return False
    await _queue_call(enqueue_webhook_event, event.event_id, event.event_type, event.payload)
    return True


@router.post(
    "/webhook-queue",
    response_model=QueueActionResponse,
    response_model_by_alias=True,
    response_model_exclude_none=True,
)
@admin()
@rate_limit(RateLimitPolicy.ADMIN)
async def manage_webhook_queue(
    request: Request,
    redis_client: RedisDep,
    body: QueueAction,
    service: WebhookEventServiceDep,
) -> QueueActionResponse:
    if isinstance(body, RetryAction):
        if not await _retry_one(service, body.event_id):
            raise CraftException(
                MessageCode.QUEUE_JOB_NOT_FOUND,
                status.HTTP_404_NOT_FOUND,
                details={"event_id": body.event_id},
            )
        logger.info("admin_webhook_retry", event_id=body.event_id)
        return QueueActionResponse(
            success=True,
            action=body.action,
            event_id=body.event_id,
            message=get_default_message(MessageCode.QUEUE_JOB_RETRIED),
        )

    if isinstance(body, CleanupAction):
        removed = await _queue_call(
            cleanup_webhook_queue, timedelta(days=body.grace_period_days)
        )
        return QueueActionResponse(
            success=True,
            action=body.action,
            removed=removed,
            message=get_default_message(MessageCode.QUEUE_CLEANED),
        )

    retried = failed = 0
    for event in await service.list_failed_webhook_events():
        try:
            await _queue_call(
                enqueue_webhook_event, event.event_id, event.event_type, event.payload
            )
            retried += 1
        except CraftException:
            failed += 1
    logger.info("admin_webhook_retry_failed", retried=retried, failed=failed)
    return QueueActionResponse(
        success=failed == 0,
        action=body.action,
        retried=retried,
        failed=failed,
        message=f"Re-queued {retried} failed event(s)",
    )


@router.get(
    "/webhook-events",
    response_model=WebhookEventsResponse,
    response_model_by_alias=True,
)
@admin()
async def list_webhook_events(
    request: Request,
    service: WebhookEventServiceDep,
    status_filter: WebhookEventStatus | None = Query(default=None, alias="status"),
    limit: int = Query(default=DEFAULT_QUEUE_LIST_LIMIT, ge=1, le=MAX_QUEUE_LIST_LIMIT),
) -> WebhookEventsResponse:
    events = await service.list_events(status=status_filter, limit=limit)
    return WebhookEventsResponse(
        count=len(events),
        events=[
            WebhookEventModel(
                id=str(event.id),
                provider=event.provider,
                event_id=event.event_id,
                event_type=event.event_type,
                status=event.status,
                retry_count=event.retry_count,
                error_message=event.error_message,
                processed_at=event.processed_at,
                created_at=event.created_at,
            )
            for event in events
        ],
    )


@router.get(
    "/usage",
    response_model=UsageReportResponse,
    response_model_by_alias=True,
)
@admin()
async def get_usage_report(
    request: Request,
    analytics: AnalyticsServiceDep,
    days: int = Query(default=DEFAULT_USAGE_WINDOW_DAYS, ge=1, le=MAX_USAGE_WINDOW_DAYS),
) -> UsageReportResponse:
    totals = await analytics.get_usage_summary(days)
    models = await analytics.get_model_breakdown(days)
    top_users = await analytics.get_top_users(days, limit=TOP_USERS_LIMIT)
    return UsageReportResponse(
        totals=UsageTotalsModel(**totals),
        models=[ModelUsageModel(**row) for row in models],
        top_users=[UserUsageModel(**row) for row in top_users],
    )
