"""Durable webhook job queue (Redis/RQ).

One job per provider event id. RQ owns retry scheduling; the
``webhook_events`` table owns business status.
"""

import re
from dataclasses import dataclass
from datetime import datetime, timedelta

from redis import Redis
from rq import Queue, Retry
from rq.exceptions import NoSuchJobError
from rq.job import Job, JobStatus

from src.utils.logger import get_logger
from src.utils.settings.queue import QueueSettings
from src.utils.settings.redis import RedisSettings
from src.utils.time import as_utc, utcnow

logger = get_logger(__name__)

JOB_FUNCTION = "src.modules.webhooks.jobs.process_webhook_job"
DEFAULT_CLEANUP_GRACE_PERIOD = timedelta(days=7)

_JOB_ID_UNSAFE = re.compile(r"[^A-Za-z0-9_-]")


@dataclass
class WebhookQueueStats:
    waiting: int
    active: int
    completed: int
    failed: int
    delayed: int

    @property
    def total(self) -> int:
        return self.waiting + self.active + self.completed + self.failed + self.delayed


@dataclass
class WebhookJobSummary:
    id: str
    event_id: str | None
    event_type: str | None
    attempt: int
    max_attempts: int
    error: str | None
    timestamp: datetime | None
    processed_on: datetime | None
    finished_on: datetime | None


def get_redis_connection() -> Redis:
    """Build Redis connection used by RQ."""
    return Redis.from_url(RedisSettings().REDIS_URL)


def get_webhook_queue(connection: Redis | None = None) -> Queue:
    settings = QueueSettings()
    return Queue(
        name=settings.WEBHOOK_QUEUE_NAME,
        connection=connection or get_redis_connection(),
        default_timeout=settings.WEBHOOK_JOB_TIMEOUT,
    )


def job_id_for(event_id: str) -> str:
    """RQ job ids only allow letters, digits, ``_`` and ``-``."""
    return _JOB_ID_UNSAFE.sub("-", event_id)


def _fetch_job(queue: Queue, event_id: str) -> Job | None:
    try:
        return Job.fetch(job_id_for(event_id), connection=queue.connection)
    except NoSuchJobError:
        return None


def enqueue_webhook_event(event_id: str, event_type: str, payload: dict) -> Job:
    """Enqueue processing for one event. A live job for the same id is reused."""
    settings = QueueSettings()
    queue = get_webhook_queue()

    existing = _fetch_job(queue, event_id)
    if existing is not None:
        if existing.get_status() == JobStatus.FAILED:
            existing.requeue()
            logger.info("webhook_job_requeued", event_id=event_id, job_id=existing.id)
        else:
            logger.info(
                "webhook_job_exists",
                event_id=event_id,
                job_id=existing.id,
                status=existing.get_status(),
            )
        return existing

    job = queue.enqueue(
        JOB_FUNCTION,
        event_id,
        event_type,
        payload,
        0,
        job_id=job_id_for(event_id),
        retry=Retry(
            max=settings.WEBHOOK_MAX_ATTEMPTS - 1, interval=settings.retry_intervals
        ),
        job_timeout=settings.WEBHOOK_JOB_TIMEOUT,
        result_ttl=settings.WEBHOOK_RESULT_TTL,
        failure_ttl=settings.WEBHOOK_FAILURE_TTL,
        meta={"attempt": 0},
        description=f"webhook {event_type} {event_id}",
    )
    logger.info(
        "webhook_job_enqueued", event_id=event_id, event_type=event_type, job_id=job.id
    )
    return job


def get_webhook_queue_stats() -> WebhookQueueStats:
    queue = get_webhook_queue()
    return WebhookQueueStats(
        waiting=queue.count,
        active=queue.started_job_registry.count,
        completed=queue.finished_job_registry.count,
        failed=queue.failed_job_registry.count,
        delayed=queue.scheduled_job_registry.count,
    )


def _summarize(job: Job) -> WebhookJobSummary:
    args = list(job.args or [])
    return WebhookJobSummary(
        id=job.id,
        event_id=args[0] if len(args) > 0 else None,
        event_type=args[1] if len(args) > 1 else None,
        attempt=int(job.meta.get("attempt", 0)),
        max_attempts=QueueSettings().WEBHOOK_MAX_ATTEMPTS,
        error=job.meta.get("last_error"),
        timestamp=job.enqueued_at or job.created_at,
        processed_on=job.started_at,
        finished_on=job.ended_at,
    )


def _list_jobs(registry, connection: Redis, limit: int) -> list[WebhookJobSummary]:
    if limit <= 0:
        return []
    job_ids = registry.get_job_ids(0, limit - 1)
    jobs = Job.fetch_many(job_ids, connection=connection)
    return [_summarize(job) for job in jobs if job is not None]


def get_failed_webhook_jobs(limit: int = 50) -> list[WebhookJobSummary]:
    queue = get_webhook_queue()
    return _list_jobs(queue.failed_job_registry, queue.connection, limit)


def get_completed_webhook_jobs(limit: int = 50) -> list[WebhookJobSummary]:
    queue = get_webhook_queue()
    return _list_jobs(queue.finished_job_registry, queue.connection, limit)


def retry_webhook_event(event_id: str) -> bool:
    """Re-queue the failed job for ``event_id``.

    Returns False when no job exists or the job is not in the failed state.
    """
    queue = get_webhook_queue()
    job = _fetch_job(queue, event_id)
    if job is None:
        return False
    if job.get_status() != JobStatus.FAILED:
        return False

    job.requeue()
    logger.info("webhook_job_retried", event_id=event_id, job_id=job.id)
    return True


def cleanup_webhook_queue(
    grace_period: timedelta = DEFAULT_CLEANUP_GRACE_PERIOD,
) -> int:
    """Delete completed jobs that finished more than ``grace_period`` ago."""
    queue = get_webhook_queue()
    registry = queue.finished_job_registry
    cutoff = utcnow() - grace_period

    removed = 0
    job_ids = registry.get_job_ids()
    for job in Job.fetch_many(job_ids, connection=queue.connection):
        if job is None or job.ended_at is None:
            continue
        if as_utc(job.ended_at) < cutoff:
            registry.remove(job, delete_job=True)
            removed += 1

    logger.info(
        "webhook_queue_cleaned",
        removed=removed,
        grace_period_days=grace_period.days,
    )
    return removed
