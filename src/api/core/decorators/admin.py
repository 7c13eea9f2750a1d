from functools import wraps

from fastapi import status

from src.api.core.decorators._common import extract_request
from src.api.core.exceptions.base import CraftException
from src.api.core.messages import MessageCode
from src.utils.logger import get_client_ip, get_logger

logger = get_logger(__name__)


def admin():
    def decorator(func):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            request = extract_request(*args, **kwargs)

            if not request:
                raise CraftException(
                    MessageCode.AUTH_REQUIRED,
                    status.HTTP_401_UNAUTHORIZED,
                    {"description": "Request object not found"},
                )

            # Get user from request state (set by auth middleware)
            user = getattr(request.state, "user", None)

            if not user:
                raise CraftException(
                    MessageCode.AUTH_REQUIRED,
                    status.HTTP_401_UNAUTHORIZED,
                    {"description": "Authentication required"},
                )

            if not user.is_admin:
                logger.warning(
                    "Unauthorized admin access attempt",
                    user_id=str(user.id),
                    endpoint=request.url.path,
                    ip_address=get_client_ip(request),
                )
                raise CraftException(
                    MessageCode.FORBIDDEN,
                    status.HTTP_403_FORBIDDEN,
                    {"description": "Admin access required"},
                )

            logger.info(
                "Admin access granted",
                user_id=str(user.id),
                endpoint=request.url.path,
            )

            return await func(*args, **kwargs)

        return wrapper

    return decorator
