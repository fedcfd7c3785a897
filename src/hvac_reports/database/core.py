"""
Database core functionality for async SQLAlchemy
"""

import re

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

# Create Base class for models
Base = declarative_base()


def create_engine(database_url: str) -> AsyncEngine:
    """Create the async engine; pool sizing only applies to server databases"""
    # asyncpg handles SSL itself and rejects the libpq sslmode parameter
    if "?sslmode=" in database_url or "&sslmode=" in database_url:
        database_url = re.sub(r"[?&]sslmode=\w+", "", database_url)

    if database_url.startswith("sqlite"):
        return create_async_engine(database_url, echo=False)

    return create_async_engine(
        database_url,
        pool_size=5,
        max_overflow=10,
        pool_pre_ping=True,
        pool_recycle=3600,
        echo=False,
    )


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def init_models(engine: AsyncEngine) -> None:
    """Create missing tables; alembic migrations remain the source of truth in production"""
    # Register models on Base.metadata
    from .. import models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
