"""Base repository implementation."""

from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Generic, Mapping, Optional, Sequence, Tuple, TypeVar
from uuid import UUID

from loguru import logger
from sqlalchemy import Select, Table, select, update
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from campaign_cache.db import ROWS_CHANGED, Database
from campaign_cache.exceptions import ConstraintViolationError, RecordNotFoundError

T = TypeVar("T")

Row = Dict[str, Any]


def _record_change(session: AsyncSession, rowcount: int) -> None:
    if rowcount > 0:
        session.info[ROWS_CHANGED] = session.info.get(ROWS_CHANGED, 0) + rowcount


class Repository(ABC, Generic[T]):
    """Typed persistence primitives for one table.

    Subclasses set ``table`` and ``unique_key`` and convert between entities and
    rows keyed by column name. Every method accepts an optional session so it can
    join a write already in progress; without one it opens its own.
    """

    table: Table
    unique_key: Tuple[str, str]

    def __init__(self, database: Database):
        self.database = database

    @abstractmethod
    def to_row(self, entity: T) -> Row:
        """Serialize an entity into column values, one entry per column."""

    @abstractmethod
    def from_row(self, row: Mapping[str, Any]) -> T:
        """Build an entity from a row mapping."""

    @property
    def columns(self) -> Sequence[str]:
        return [column.name for column in self.table.columns]

    def select(self) -> Select:
        return select(self.table)

    @asynccontextmanager
    async def _reading(self, session: Optional[AsyncSession]) -> AsyncIterator[AsyncSession]:
        if session is not None:
            yield session
        else:
            async with self.database.read() as own_session:
                yield own_session

    @asynccontextmanager
    async def _writing(self, session: Optional[AsyncSession]) -> AsyncIterator[AsyncSession]:
        if session is not None:
            yield session
        else:
            async with self.database.write() as own_session:
                yield own_session

    async def find_one(self, query: Select, session: Optional[AsyncSession] = None) -> Optional[T]:
        async with self._reading(session) as s:
            result = await s.execute(query)
            row = result.mappings().one_or_none()
        return self.from_row(row) if row is not None else None

    async def find_all(self, query: Select, session: Optional[AsyncSession] = None) -> list[T]:
        async with self._reading(session) as s:
            result = await s.execute(query)
            rows = result.mappings().all()
        return [self.from_row(row) for row in rows]

    async def find_by_id(self, id: UUID, session: Optional[AsyncSession] = None) -> Optional[T]:
        """Point lookup by primary identity. Returns None when absent."""
        return await self.find_one(self.select().where(self.table.c.id == id), session)

    async def find_by_unique_key(
        self, first: str, second: str, session: Optional[AsyncSession] = None
    ) -> Optional[T]:
        """Lookup by the table's unique column pair."""
        first_column, second_column = self.unique_key
        query = self.select().where(
            self.table.c[first_column] == first, self.table.c[second_column] == second
        )
        return await self.find_one(query, session)

    async def save(self, entity: T, session: Optional[AsyncSession] = None) -> T:
        """Insert or replace a row keyed by primary identity.

        Uses SQLite's ON CONFLICT on the primary key only, so a collision on any
        other unique constraint is reported instead of silently deleting a row.

        Raises:
            ConstraintViolationError: If a uniqueness or foreign key constraint fails
        """
        row = self.to_row(entity)
        stmt = sqlite_insert(self.table).values(row)
        stmt = stmt.on_conflict_do_update(
            index_elements=["id"],
            set_={name: stmt.excluded[name] for name in row if name != "id"},
        )

        async with self._writing(session) as s:
            try:
                result = await s.execute(stmt)
            except IntegrityError as e:
                logger.warning(f"Save into {self.table.name} violated a constraint: {e.orig}")
                raise ConstraintViolationError(f"{self.table.name}: {e.orig}") from e
            _record_change(s, result.rowcount)

        logger.debug(f"Saved {self.table.name} {row['id']}")
        return self.from_row(row)

    async def update_columns(
        self,
        id: UUID,
        values: Mapping[str, Any],
        session: Optional[AsyncSession] = None,
    ) -> int:
        """Issue one UPDATE touching exactly the given columns of one row.

        Raises:
            RecordNotFoundError: If no row has the given id
            ConstraintViolationError: If the new values violate a constraint
        """
        if not values:
            raise ValueError("update_columns requires at least one column")
        if "id" in values:
            raise ValueError("Primary identity cannot be updated")

        stmt = (
            update(self.table)
            .where(self.table.c.id == id)
            .values({self.table.c[name]: value for name, value in values.items()})
        )

        async with self._writing(session) as s:
            try:
                result = await s.execute(stmt)
            except IntegrityError as e:
                logger.warning(f"Update of {self.table.name} {id} violated a constraint: {e.orig}")
                raise ConstraintViolationError(f"{self.table.name}: {e.orig}") from e

            if result.rowcount == 0:
                raise RecordNotFoundError(self.table.name, id)
            _record_change(s, result.rowcount)

        logger.debug(f"Updated {self.table.name} {id} columns={list(values)}")
        return result.rowcount
