"""Capture, clear and restore the tracked tables of the database.

Tables are processed in foreign-key dependency order: parents first when
inserting, children first when deleting.
"""

from __future__ import annotations

import hashlib
from collections.abc import Iterable, Sequence

from sqlalchemy import MetaData, Table, delete, insert, select
from sqlalchemy.ext.asyncio import AsyncSession

from scenariolab.core.logging import get_logger
from scenariolab.scenarios.snapshots import TableSection

logger = get_logger(__name__)


class DatabaseDataSet:
    """The set of tables a scenario chain may mutate.

    Attributes:
        metadata: SQLAlchemy metadata holding the table definitions.
        tables: Tracked tables in dependency order.
    """

    def __init__(self, metadata: MetaData, tables: Iterable[str] | None = None) -> None:
        """Initialize the dataset.

        Args:
            metadata: Metadata whose tables are tracked.
            tables: Restrict tracking to these table names (default: all).

        Raises:
            KeyError: If a requested table is not defined on the metadata.
        """
        self.metadata = metadata
        if tables is None:
            self.tables: list[Table] = list(metadata.sorted_tables)
        else:
            wanted = set(tables)
            missing = wanted - set(metadata.tables)
            if missing:
                raise KeyError(f"Unknown tables: {sorted(missing)}")
            self.tables = [t for t in metadata.sorted_tables if t.name in wanted]

    @property
    def table_names(self) -> list[str]:
        return [t.name for t in self.tables]

    def schema_signature(self) -> str:
        """Hash of tracked table and column names and types."""
        parts: list[str] = []
        for table in self.tables:
            columns = ",".join(f"{c.name}:{c.type!r}" for c in table.columns)
            parts.append(f"{table.name}({columns})")
        return hashlib.sha256(";".join(parts).encode()).hexdigest()

    async def capture(self, session: AsyncSession) -> list[TableSection]:
        """Read every tracked table ordered by primary key."""
        sections: list[TableSection] = []
        for table in self.tables:
            order_by = list(table.primary_key.columns) or list(table.columns)
            result = await session.execute(select(table).order_by(*order_by))
            rows = [tuple(row) for row in result.fetchall()]
            sections.append(TableSection(table.name, tuple(c.name for c in table.columns), rows))

        logger.debug(
            "dataset.captured",
            tables=len(sections),
            rows=sum(len(s.rows) for s in sections),
        )
        return sections

    async def clear(self, session: AsyncSession) -> None:
        """Delete all rows of the tracked tables."""
        for table in reversed(self.tables):
            await session.execute(delete(table))
        # Identity map entries now point at deleted rows
        session.expunge_all()
        logger.debug("dataset.cleared", tables=self.table_names)

    async def restore(self, session: AsyncSession, sections: Sequence[TableSection]) -> None:
        """Replace the tracked tables' content with ``sections``.

        Raises:
            KeyError: If a section names an untracked table.
        """
        by_name = {section.name: section for section in sections}
        unknown = set(by_name) - set(self.table_names)
        if unknown:
            raise KeyError(f"Snapshot contains untracked tables: {sorted(unknown)}")

        await self.clear(session)
        for table in self.tables:
            section = by_name.get(table.name)
            if section is None or not section.rows:
                continue
            records = [dict(zip(section.columns, row, strict=True)) for row in section.rows]
            await session.execute(insert(table), records)

        logger.debug(
            "dataset.restored",
            tables=len(by_name),
            rows=sum(len(s.rows) for s in sections),
        )
