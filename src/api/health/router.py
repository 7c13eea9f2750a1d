"""Health check endpoints for monitoring."""

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from src.api.core.dependencies import AsyncSessionDep, RedisDep
from src.modules.health.service import HealthService
from src.utils.settings.app import AppSettings

root_router = APIRouter()
router = APIRouter(prefix="/health", tags=["health"])


@root_router.get("/")
async def root():
    return {"service": "craft-billing", "version": AppSettings().API_VERSION}


@router.get("")
async def health_check(db: AsyncSessionDep, redis_client: RedisDep) -> JSONResponse:
    """Database, Redis and webhook queue status. 503 when any is down."""
    health = await HealthService(db, redis_client).run_all_checks()
    status_code = 503 if health.status == "unhealthy" else 200
    return JSONResponse(
        status_code=status_code,
        content={
            "status": health.status,
            "timestamp": health.timestamp,
            "services": {
                name: {
                    "status": result.status,
                    "connected": result.connected,
                    "details": result.details,
                    "error": result.error,
                }
                for name, result in health.services.items()
            },
        },
    )


@router.get("/liveness")
async def liveness_check():
    """Simple liveness check - indicates if service is running."""
    return {"status": "alive", "service": "craft-billing"}
