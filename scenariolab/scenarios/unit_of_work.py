"""Transactional unit-of-work boundary used while seeding scenarios."""

from __future__ import annotations

from abc import ABC, abstractmethod

from sqlalchemy.ext.asyncio import AsyncSession, AsyncSessionTransaction

from scenariolab.core.exceptions import TransactionError


class UnitOfWork(ABC):
    """Abstract transactional boundary.

    Scenario seed operations receive the unit of work and perform their
    writes through it; the executor owns begin/commit/rollback.
    """

    @abstractmethod
    async def begin_transaction(self) -> None:
        """Begin a new transaction."""

    @abstractmethod
    async def commit(self) -> None:
        """Commit the active transaction.

        Raises:
            TransactionError: If no transaction is active.
        """

    @abstractmethod
    async def rollback(self) -> None:
        """Roll back the current transaction.

        Raises:
            TransactionError: If no transaction was ever started.
        """

    @abstractmethod
    def is_active_transaction(self) -> bool:
        """Determine if there is an active transaction."""


class SqlAlchemyUnitOfWork(UnitOfWork):
    """Unit of work over a SQLAlchemy ``AsyncSession``."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self._transaction: AsyncSessionTransaction | None = None

    @property
    def session(self) -> AsyncSession:
        return self._session

    async def begin_transaction(self) -> None:
        if self.is_active_transaction() or self._session.in_transaction():
            raise TransactionError("A transaction is already active on this session")
        self._transaction = await self._session.begin()

    async def commit(self) -> None:
        if self._transaction is not None and self._transaction.is_active:
            await self._transaction.commit()
        else:
            raise TransactionError("The current transaction is no longer active")

    async def rollback(self) -> None:
        if self._transaction is None:
            raise TransactionError("No transaction found to roll back")
        if self._transaction.is_active:
            await self._transaction.rollback()

    def is_active_transaction(self) -> bool:
        return self._transaction is not None and self._transaction.is_active

    async def close(self) -> None:
        """Roll back anything left open and close the session."""
        if self.is_active_transaction():
            await self.rollback()
        await self._session.close()
