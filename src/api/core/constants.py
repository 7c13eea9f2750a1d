API_VERSION_HEADER = "X-Craft-Version"

# JWT Configuration
JWT_ALGORITHM = "HS256"

# Authentication endpoints configuration
SKIP_AUTH_PATHS = {
    "/openapi.json",
    "/docs",
    "/redoc",
    "/health",
    "/health/liveness",
    "/",
    "/webhooks/polar",
    "/webhooks/razorpay",
    "/cron/reset-credits",
    "/cron/award-referrals",
}

SKIP_AUTH_PATTERNS: list = [
    (None, r"^/cron/[a-z-]+$"),
]

# Pagination
DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100

# Admin webhook queue views
DEFAULT_QUEUE_LIST_LIMIT = 50
MAX_QUEUE_LIST_LIMIT = 500

# Admin usage analytics
DEFAULT_USAGE_WINDOW_DAYS = 30
MAX_USAGE_WINDOW_DAYS = 365
TOP_USERS_LIMIT = 10
