from fastapi import APIRouter

from src.api.admin.router import router as admin_router
from src.api.balance.router import router as balance_router
from src.api.cron.router import router as cron_router
from src.api.health.router import router as health_router, root_router
from src.api.payments.router import router as payments_router
from src.api.referrals.router import router as referrals_router
from src.api.webhooks.router import router as webhooks_router

# V1 API router
v1_router = APIRouter(prefix="/v1")

# Include domain routers
v1_router.include_router(admin_router)
v1_router.include_router(balance_router)
v1_router.include_router(payments_router)
v1_router.include_router(referrals_router)

# Main API router
api_router = APIRouter()
api_router.include_router(root_router)
api_router.include_router(health_router)
api_router.include_router(webhooks_router)
api_router.include_router(cron_router)
api_router.include_router(v1_router)
