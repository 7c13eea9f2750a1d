from uuid import UUID

from fastapi import status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.core.exceptions.base import CraftException
from src.api.core.messages import MessageCode
from src.database.models import User
from src.utils.logger import get_logger


class BaseService:
    """Base service class with database dependency injection."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.logger = get_logger(self.__class__.__name__)

    async def get_active_user(self, user_id: UUID) -> User:
        """Load a user that has not been soft-deleted."""
        user = await self.db.scalar(
            select(User).where(User.id == user_id, User.deleted_at.is_(None))
        )
        if user is None:
            raise CraftException(
                MessageCode.USER_NOT_FOUND,
                status.HTTP_404_NOT_FOUND,
                details={"user_id": str(user_id)},
            )
        return user
