from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from src.utils.settings.database import DatabaseSettings

async_engine = create_async_engine(DatabaseSettings().DATABASE_URL_ASYNC, echo=False)
AsyncSessionLocal = async_sessionmaker(
    bind=async_engine, class_=AsyncSession, expire_on_commit=False
)


def create_worker_engine(url: str | None = None) -> AsyncEngine:
    """Engine for short-lived event loops (one per queue job).

    Pooled connections are bound to the loop that opened them, so jobs that
    run under ``asyncio.run`` must not share the API's pool.
    """
    return create_async_engine(
        url or DatabaseSettings().DATABASE_URL_ASYNC, echo=False, poolclass=NullPool
    )
