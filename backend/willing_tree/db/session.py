"""Async engine and request-scoped sessions."""

from collections.abc import AsyncGenerator
from functools import lru_cache

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from willing_tree.config import Settings, get_settings


def build_engine(settings: Settings) -> AsyncEngine:
    """Create the asyncpg engine. asyncpg takes SSL through connect_args, not the URL."""
    return create_async_engine(
        settings.database_url,
        echo=settings.debug,
        pool_pre_ping=True,
        pool_size=5,
        max_overflow=10,
        connect_args={"ssl": "require"} if settings.database_requires_ssl else {},
    )


@lru_cache
def get_sessionmaker() -> async_sessionmaker[AsyncSession]:
    """Session factory, built on first use so importing the app never opens a pool."""
    return async_sessionmaker(
        bind=build_engine(get_settings()),
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency for database sessions.

    Services commit through the entity store; anything left uncommitted when
    a request fails is rolled back here.
    """
    async with get_sessionmaker()() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
