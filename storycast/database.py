"""Async engine, session factory and the request-scoped session dependency."""

from typing import AsyncIterator

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from storycast.config import get_settings
from storycast.models import Base


def make_engine(url: str) -> AsyncEngine:
    # pre-ping only matters for networked pools
    if url.startswith("sqlite"):
        return create_async_engine(url, echo=False)
    return create_async_engine(url, echo=False, pool_pre_ping=True)


def make_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    # Stores hand rows out after commit, so attributes must stay loaded
    return async_sessionmaker(bind=bind, class_=AsyncSession, expire_on_commit=False, autoflush=False)


engine = make_engine(get_settings().database_url)
AsyncSessionLocal = make_session_factory(engine)


async def create_tables(bind: AsyncEngine = engine) -> None:
    """Create any missing tables. Migrations remain the source of truth."""
    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def get_db() -> AsyncIterator[AsyncSession]:
    async with AsyncSessionLocal() as session:
        yield session
