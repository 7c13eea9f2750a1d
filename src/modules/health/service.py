import asyncio
from dataclasses import asdict, dataclass
from typing import Literal

import redis.asyncio as redis
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool

from src.modules.webhooks.queue import get_webhook_queue_stats
from src.utils.logger import get_logger
from src.utils.time import utcnow

logger = get_logger(__name__)


@dataclass
class HealthCheckResult:
    """Result of a health check."""

    service: str
    status: Literal["healthy", "unhealthy", "degraded"]
    connected: bool
    details: dict
    error: str | None = None


@dataclass
class OverallHealthStatus:
    """Overall health status with individual service results."""

    status: Literal["healthy", "degraded", "unhealthy"]
    services: dict[str, HealthCheckResult]
    timestamp: str


class HealthService:
    """Service for performing health checks on various system components."""

    def __init__(self, db: AsyncSession, redis: redis.Redis):
        self.db = db
        self.redis = redis

    async def check_database_health(self) -> HealthCheckResult:
        try:
            result = await self.db.execute(text("SELECT 1 as test"))
            return HealthCheckResult(
                service="database",
                status="healthy",
                connected=True,
                details={"test_query_result": result.scalar()},
            )
        except Exception as e:
            logger.error(f"Database health check error: {e}")
            return HealthCheckResult(
                service="database",
                status="unhealthy",
                connected=False,
                details={},
                error=str(e),
            )

    async def check_redis_health(self) -> HealthCheckResult:
        try:
            await self.redis.ping()
            return HealthCheckResult(
                service="redis", status="healthy", connected=True, details={}
            )
        except Exception as e:
            logger.error(f"Redis health check error: {e}")
            return HealthCheckResult(
                service="redis",
                status="unhealthy",
                connected=False,
                details={},
                error=str(e),
            )

    async def check_webhook_queue_health(self) -> HealthCheckResult:
        """Queue reachability plus a backlog snapshot.

        A non-empty failed set degrades the service: those events need an
        operator.
        """
        try:
            stats = await run_in_threadpool(get_webhook_queue_stats)
            return HealthCheckResult(
                service="webhook_queue",
                status="degraded" if stats.failed else "healthy",
                connected=True,
                details={**asdict(stats), "total": stats.total},
            )
        except Exception as e:
            logger.error(f"Webhook queue health check error: {e}")
            return HealthCheckResult(
                service="webhook_queue",
                status="unhealthy",
                connected=False,
                details={},
                error=str(e),
            )

    async def run_all_checks(self) -> OverallHealthStatus:
        """Run all health checks in parallel and return overall status."""
        # The database check runs alone on its session
        database = await self.check_database_health()
        others = await asyncio.gather(
            self.check_redis_health(), self.check_webhook_queue_health()
        )

        services: dict[str, HealthCheckResult] = {}
        overall_status: Literal["healthy", "degraded", "unhealthy"] = "healthy"
        for result in (database, *others):
            if result.status == "unhealthy":
                overall_status = "unhealthy"
            elif result.status == "degraded" and overall_status == "healthy":
                overall_status = "degraded"
            services[result.service] = result

        return OverallHealthStatus(
            status=overall_status,
            services=services,
            timestamp=utcnow().isoformat(),
        )
