"""Shared pytest fixtures for ScenarioLab tests.

Every test gets its own SQLite database file and snapshot directory under
``tmp_path``; nothing touches a real PostgreSQL server.
"""

from collections.abc import AsyncGenerator, Generator
from pathlib import Path

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from scenariolab.catalog import CatalogUnitOfWork, build_registry
from scenariolab.catalog.models import Role, User
from scenariolab.core.config import get_settings
from scenariolab.core.database import Base
from scenariolab.scenarios import DatabaseDataSet, ScenarioExecutor, SnapshotStore


@pytest.fixture
def database_url(tmp_path: Path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'scenarios.db'}"


@pytest.fixture
def cache_dir(tmp_path: Path) -> Path:
    return tmp_path / "snapshots"


@pytest.fixture(autouse=True)
def isolated_settings(
    monkeypatch: pytest.MonkeyPatch, database_url: str, cache_dir: Path
) -> Generator[None, None, None]:
    """Point settings at the per-test database and cache directory."""
    monkeypatch.setenv("APP_ENV", "testing")
    monkeypatch.setenv("DATABASE_URL", database_url)
    monkeypatch.setenv("SCENARIO_CACHE_DIR", str(cache_dir))
    monkeypatch.setenv("SCENARIO_LOCK_TIMEOUT_SECONDS", "2")
    monkeypatch.setenv("SCENARIO_LOCK_POLL_INTERVAL_SECONDS", "0.01")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
async def engine(database_url: str) -> AsyncGenerator[AsyncEngine, None]:
    """Async engine with every catalog table created."""
    engine = create_async_engine(database_url, echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def uow(
    session_maker: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[CatalogUnitOfWork, None]:
    """Catalog unit of work over a fresh session."""
    async with session_maker() as session:
        unit = CatalogUnitOfWork(session)
        yield unit
        await unit.close()


@pytest.fixture
def store(cache_dir: Path) -> SnapshotStore:
    return SnapshotStore(cache_dir, lock_timeout=0.5, poll_interval=0.01)


@pytest.fixture
def dataset() -> DatabaseDataSet:
    return DatabaseDataSet(Base.metadata)


@pytest.fixture
def executor(store: SnapshotStore, dataset: DatabaseDataSet) -> ScenarioExecutor:
    """Executor over the sample catalog registry."""
    return ScenarioExecutor(build_registry(), store, dataset)


async def count_rows(session_maker: async_sessionmaker[AsyncSession], model: type) -> int:
    """Count rows of ``model`` through a separate session."""
    async with session_maker() as session:
        result = await session.execute(select(func.count()).select_from(model))
        return result.scalar() or 0


@pytest.fixture
def count_users(session_maker: async_sessionmaker[AsyncSession]):
    async def _count() -> int:
        return await count_rows(session_maker, User)

    return _count


@pytest.fixture
def count_roles(session_maker: async_sessionmaker[AsyncSession]):
    async def _count() -> int:
        return await count_rows(session_maker, Role)

    return _count
