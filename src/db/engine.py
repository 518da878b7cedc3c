"""Database and Redis handles shared by the dashboard API.

One async engine serves both request sessions (`get_session`) and the
audit recorder, which opens a short session per write. Redis holds the
dashboard login sessions.
"""

from __future__ import annotations

import contextlib
import logging
from collections.abc import AsyncGenerator

import redis.asyncio as aioredis
from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from src.config import settings

logger = logging.getLogger(__name__)

engine: AsyncEngine = create_async_engine(
    settings.db.database_url,
    echo=settings.log_level == "DEBUG",
    pool_size=settings.db.db_pool_size,
    max_overflow=settings.db.db_max_overflow,
    pool_pre_ping=True,
)

async_session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

redis_client: aioredis.Redis = aioredis.from_url(settings.db.redis_url, decode_responses=True)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency: a session committed when the route returns, rolled back on error."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def init_db() -> None:
    """Check the database is reachable.

    Schema comes from Alembic. Outside production the audit tables are
    also created on the fly so a fresh dev database works without a
    migration run.
    """
    async with engine.begin() as conn:
        await conn.execute(text("SELECT 1"))
        if not settings.is_production:
            from src.models import Base

            await conn.run_sync(Base.metadata.create_all)
    logger.info("Database reachable (pool_size=%d)", settings.db.db_pool_size)


async def close_db() -> None:
    await engine.dispose()
    await redis_client.aclose()


@contextlib.asynccontextmanager
async def db_lifespan() -> AsyncGenerator[None, None]:
    """Open on startup, dispose on shutdown. Used by the app lifespan."""
    await init_db()
    try:
        yield
    finally:
        await close_db()
