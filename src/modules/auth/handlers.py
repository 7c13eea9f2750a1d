"""Bearer token authentication."""

from uuid import UUID

from fastapi import status
from jose import JWTError, jwt
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.core.constants import JWT_ALGORITHM
from src.api.core.exceptions.base import CraftException
from src.api.core.messages import MessageCode
from src.core.base import BaseService
from src.core.context import AuthenticatedUserContext
from src.utils.settings.auth import AuthSettings
from src.utils.logger import get_logger

logger = get_logger(__name__)


def decode_access_token(token: str) -> dict:
    settings = AuthSettings()
    if not settings.AUTH_JWT_SECRET:
        raise CraftException(
            MessageCode.INVALID_TOKEN,
            status.HTTP_401_UNAUTHORIZED,
            {"description": "Token authentication is not configured"},
        )
    try:
        return jwt.decode(
            token,
            settings.AUTH_JWT_SECRET,
            algorithms=[JWT_ALGORITHM],
            audience=settings.AUTH_JWT_AUDIENCE,
        )
    except JWTError as e:
        logger.info(f"JWT decoding failed: {e}")
        raise CraftException(
            MessageCode.INVALID_TOKEN,
            status.HTTP_401_UNAUTHORIZED,
            {"description": "Invalid or expired authentication token"},
        )


async def handle_jwt_auth(db: AsyncSession, token: str) -> AuthenticatedUserContext:
    payload = decode_access_token(token)

    try:
        user_id = UUID(str(payload.get("sub")))
    except ValueError:
        raise CraftException(
            MessageCode.INVALID_TOKEN,
            status.HTTP_401_UNAUTHORIZED,
            {"description": "Token subject is not a user id"},
        )

    user = await BaseService(db).get_active_user(user_id)
    return AuthenticatedUserContext(user=user, claims=payload)
