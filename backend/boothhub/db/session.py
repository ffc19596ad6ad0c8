"""
Async engine and session factory.

Pool tuning only applies to server databases; SQLite (used by the test suite)
gets the driver defaults.
"""

from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from boothhub.core.config import get_settings
from boothhub.db.base import Base

settings = get_settings()


def _engine_kwargs(url: str) -> dict:
    if url.startswith("sqlite"):
        return {}
    return {
        "pool_size": settings.DB_POOL_SIZE,
        "max_overflow": settings.DB_MAX_OVERFLOW,
        "pool_timeout": settings.DB_POOL_TIMEOUT,
        "pool_recycle": settings.DB_POOL_RECYCLE,
        "pool_pre_ping": True,
    }


engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
    **_engine_kwargs(settings.DATABASE_URL),
)

AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Request-scoped session. Services commit explicitly before publishing
    events; anything left pending is committed here, and any error rolls back.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def create_tables(db: AsyncSession, tables) -> None:
    """Create the given tables if they are missing. Used by module migrate hooks."""
    await db.run_sync(
        lambda session: Base.metadata.create_all(session.connection(), tables=list(tables), checkfirst=True)
    )
    await db.commit()
