"""Tests for capturing and restoring database tables."""

import datetime
import uuid

import pytest
from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    LargeBinary,
    MetaData,
    String,
    Table,
    Uuid,
    insert,
    select,
)
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from scenariolab.scenarios import DatabaseDataSet, TableSection

metadata = MetaData()

account = Table(
    "account",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("code", Uuid, nullable=False),
    Column("opened_on", Date),
    Column("active", Boolean, nullable=False),
)

entry = Table(
    "entry",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("account_id", ForeignKey("account.id"), nullable=False),
    Column("memo", String(50)),
    Column("payload", JSON),
    Column("blob", LargeBinary),
    Column("posted_at", DateTime),
)

ACCOUNT_ROWS = [
    {"id": 2, "code": uuid.UUID(int=2), "opened_on": datetime.date(2024, 3, 1), "active": False},
    {"id": 1, "code": uuid.UUID(int=1), "opened_on": None, "active": True},
]
ENTRY_ROWS = [
    {
        "id": 10,
        "account_id": 1,
        "memo": "opening",
        "payload": {"tags": ["a", "b"], "amount": 12},
        "blob": b"\x00\x01",
        "posted_at": datetime.datetime(2024, 3, 1, 9, 30),
    },
]


@pytest.fixture
async def ledger_sessions(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)
        await conn.execute(insert(account), ACCOUNT_ROWS)
        await conn.execute(insert(entry), ENTRY_ROWS)
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


class TestDatabaseDataSet:
    """Tests for table selection and schema signatures."""

    def test_tables_in_dependency_order(self) -> None:
        assert DatabaseDataSet(metadata).table_names == ["account", "entry"]

    def test_restrict_to_tables(self) -> None:
        assert DatabaseDataSet(metadata, tables=["entry"]).table_names == ["entry"]

    def test_unknown_table_raises(self) -> None:
        with pytest.raises(KeyError, match="missing"):
            DatabaseDataSet(metadata, tables=["missing"])

    def test_schema_signature_tracks_columns(self) -> None:
        other = MetaData()
        Table("account", other, Column("id", Integer, primary_key=True))

        assert DatabaseDataSet(metadata).schema_signature() == (
            DatabaseDataSet(metadata).schema_signature()
        )
        assert DatabaseDataSet(metadata, ["account"]).schema_signature() != (
            DatabaseDataSet(other).schema_signature()
        )


class TestCaptureRestore:
    """Tests for capture, clear and restore against SQLite."""

    @pytest.mark.asyncio
    async def test_capture_orders_by_primary_key(self, ledger_sessions) -> None:
        async with ledger_sessions() as session:
            sections = await DatabaseDataSet(metadata).capture(session)

        accounts = sections[0]
        assert accounts.name == "account"
        assert accounts.columns == ("id", "code", "opened_on", "active")
        assert [row[0] for row in accounts.rows] == [1, 2]
        assert sections[1].rows[0][3] == {"tags": ["a", "b"], "amount": 12}

    @pytest.mark.asyncio
    async def test_clear_empties_tables(self, ledger_sessions) -> None:
        dataset = DatabaseDataSet(metadata)
        async with ledger_sessions() as session:
            await dataset.clear(session)
            await session.commit()

        async with ledger_sessions() as session:
            assert all(not s.rows for s in await dataset.capture(session))

    @pytest.mark.asyncio
    async def test_restore_reproduces_capture(self, ledger_sessions) -> None:
        """Restoring a capture after modifications brings back the exact rows."""
        dataset = DatabaseDataSet(metadata)
        async with ledger_sessions() as session:
            captured = await dataset.capture(session)
            await session.execute(entry.delete())
            await session.execute(
                insert(account), [{"id": 3, "code": uuid.uuid4(), "active": True}]
            )
            await session.commit()

        async with ledger_sessions() as session:
            await dataset.restore(session, captured)
            await session.commit()

        async with ledger_sessions() as session:
            assert await dataset.capture(session) == captured
            posted = (await session.execute(select(entry.c.posted_at))).scalar_one()
            assert posted == datetime.datetime(2024, 3, 1, 9, 30)

    @pytest.mark.asyncio
    async def test_restore_rejects_untracked_table(self, ledger_sessions) -> None:
        dataset = DatabaseDataSet(metadata, tables=["account"])

        async with ledger_sessions() as session:
            with pytest.raises(KeyError, match="entry"):
                await dataset.restore(session, [TableSection("entry", ("id",), [(1,)])])
