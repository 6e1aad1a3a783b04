"""
Database utilities and connection management
"""

import os
import logging
from datetime import datetime, timezone
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.orm import DeclarativeBase
from typing import AsyncGenerator, Optional

from cloche.utils.errors import Conflict, StorageError

logger = logging.getLogger(__name__)

# Database URL from environment
DATABASE_URL = os.getenv("DATABASE_URL", "postgresql+asyncpg://localhost:5432/cloche_db")

# Create async engine
engine = create_async_engine(
    DATABASE_URL,
    echo=os.getenv("DEBUG", "false").lower() == "true",
    pool_pre_ping=True,
    pool_recycle=300,
)

# Session factory
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False
)

class Base(DeclarativeBase):
    """Base class for all database models"""
    pass

def utcnow() -> datetime:
    """Timezone-aware UTC timestamp used for application-side column defaults"""
    return datetime.now(timezone.utc)

async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency to get database session"""
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()

def get_async_session():
    """Get async database session context manager"""
    return AsyncSessionLocal()

async def create_tables(bind=None):
    """Create all database tables (one-time bootstrap at process start)"""
    target = bind or engine
    async with target.begin() as conn:
        # Import all models to ensure they're registered
        from cloche.models import (
            boutique, user, showcase, product, lead, conversation
        )
        await conn.run_sync(Base.metadata.create_all)

async def commit_or_rollback(db: AsyncSession, action: str, conflict_message: Optional[str] = None):
    """
    Commit the current unit of work, translating driver failures

    Integrity violations become Conflict when a conflict message is given;
    every other database failure is logged and raised as StorageError.
    """
    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        if conflict_message:
            raise Conflict(conflict_message) from e
        logger.error(f"Integrity error while trying to {action}: {e}")
        raise StorageError(f"Failed to {action}") from e
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Database error while trying to {action}: {e}")
        raise StorageError(f"Failed to {action}") from e
