"""
Database session configuration.

This module handles database engine creation, session management and
the all-or-nothing write boundary used by every ledger mutation.
"""

from contextlib import asynccontextmanager
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base
from sqlalchemy.orm.exc import StaleDataError
from fundledger.app.core.config import settings
from fundledger.app.core.exceptions import ConcurrencyConflictError

# Create async engine
engine = create_async_engine(
    settings.database_url,
    echo=settings.db_echo,
    pool_size=settings.db_pool_size,
    max_overflow=settings.db_max_overflow,
    future=True,
)

# Create async session factory
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)

# Create declarative base for models
Base = declarative_base()


async def get_db():
    """
    FastAPI dependency for database sessions.

    Yields an async database session and ensures it's properly closed.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()


@asynccontextmanager
async def transactional(db: AsyncSession):
    """
    Run a block of ledger writes as one unit.

    Commits when the block finishes, rolls everything back if it raises.
    A stale version token on a fund or grant row surfaces as
    ConcurrencyConflictError.
    """
    try:
        yield db
        await db.commit()
    except StaleDataError as exc:
        await db.rollback()
        raise ConcurrencyConflictError(details={"reason": str(exc)}) from exc
    except BaseException:
        await db.rollback()
        raise
