"""Async SQLAlchemy 2.0 database setup."""

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from scenariolab.core.config import get_settings


class Base(DeclarativeBase):
    """SQLAlchemy declarative base for all tracked models."""

    pass


def get_engine(database_url: str | None = None) -> AsyncEngine:
    """Create async engine from settings.

    Args:
        database_url: Override for the configured database URL.
    """
    settings = get_settings()
    engine: AsyncEngine = create_async_engine(
        database_url or settings.database_url,
        echo=settings.debug,
        pool_pre_ping=True,
    )
    return engine


def get_session_maker(engine: AsyncEngine | None = None) -> async_sessionmaker[AsyncSession]:
    """Create async session maker.

    Args:
        engine: Engine to bind; a new one is created from settings when omitted.
    """
    return async_sessionmaker(
        engine or get_engine(),
        class_=AsyncSession,
        expire_on_commit=False,
    )


async def create_schema(engine: AsyncEngine) -> None:
    """Create every table registered on ``Base.metadata`` if missing."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
