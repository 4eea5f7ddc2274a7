"""Database session management and unit-of-work scoping."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from questionbank.config import settings


def _get_async_url(url: str) -> str:
    """Convert sync database URL to async format."""
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+psycopg://", 1)
    return url


engine = create_async_engine(
    _get_async_url(settings.database_url),
    echo=settings.debug,
    pool_pre_ping=True,
)

async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Yield database session for FastAPI dependency injection."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


@asynccontextmanager
async def transaction(session: AsyncSession) -> AsyncGenerator[AsyncSession, None]:
    """Run the enclosed statements as one atomic unit of work.

    Statements are issued in order on ``session``. The unit commits when
    the block exits normally; any exception rolls back everything written
    inside the block and is re-raised unchanged.
    """
    try:
        yield session
        await session.commit()
    except Exception as exc:
        await session.rollback()
        logger.warning(
            "Transaction rolled back",
            error=f"{type(exc).__name__}: {exc}",
        )
        raise
