from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from ad_rewards.core.config import settings

engine = create_async_engine(
    settings.POSTGRES_URL,
    echo=False,
    future=True,
    pool_size=settings.POOL_SIZE,
    max_overflow=settings.MAX_OVERFLOW,
    pool_pre_ping=True,
)

SessionLocal = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency."""
    async with SessionLocal() as session:
        yield session


@asynccontextmanager
async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Session on a throwaway engine without pooling: Celery tasks and management
    commands run every job in a fresh event loop via asyncio.run, pooled
    asyncpg connections cannot outlive their loop.
    """
    task_engine = create_async_engine(settings.POSTGRES_URL, poolclass=NullPool)
    try:
        async with async_sessionmaker(task_engine, class_=AsyncSession, expire_on_commit=False)() as session:
            yield session
    finally:
        await task_engine.dispose()
