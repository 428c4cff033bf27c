"""Apply named schema migrations exactly once, tracked in a ledger table.

Each migration receives an Alembic ``Operations`` object bound to the live
connection. The ledger records applied migration names in application order.
"""

import sqlite3
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, List, Sequence, Tuple

from alembic.migration import MigrationContext
from alembic.operations import Operations
from loguru import logger
from sqlalchemy import (
    Column,
    Connection,
    DateTime,
    Integer,
    MetaData,
    String,
    Table,
    create_engine,
    insert,
    select,
    text,
)
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

from campaign_cache.exceptions import StorageFatalError

LEDGER_TABLE = "schema_migrations"

ledger = Table(
    LEDGER_TABLE,
    MetaData(),
    Column("position", Integer, primary_key=True, autoincrement=False),
    Column("name", String, nullable=False, unique=True),
    Column("applied_at", DateTime(timezone=True), nullable=False),
)

SchemaSignature = List[Tuple[str, str, str, str]]


@dataclass(frozen=True)
class Migration:
    """A named schema change."""

    name: str
    upgrade: Callable[[Operations], None]


def schema_signature(connection: Connection) -> SchemaSignature:
    """Return the DDL of every table and index except the ledger, in a stable order."""
    result = connection.execute(
        text(
            "SELECT type, name, tbl_name, sql FROM sqlite_master "
            "WHERE name NOT LIKE 'sqlite_%' AND tbl_name != :ledger "
            "ORDER BY type, name"
        ),
        {"ledger": LEDGER_TABLE},
    )
    return [tuple(row) for row in result.all()]  # pyright: ignore [reportReturnType]


class Migrator:
    """Brings a database up to the latest declared schema.

    Args:
        migrations: Migrations in application order. Names must be unique.
        erase_database_on_schema_change: Drop every table and migrate from scratch
            when the stored schema no longer matches what the applied migrations
            produce. Destroys all data; only for debug builds.
    """

    def __init__(
        self,
        migrations: Sequence[Migration],
        erase_database_on_schema_change: bool = False,
    ):
        names = [migration.name for migration in migrations]
        if len(set(names)) != len(names):
            raise ValueError(f"Duplicate migration names: {names}")

        self.migrations = list(migrations)
        self.erase_database_on_schema_change = erase_database_on_schema_change
        self._by_name = {migration.name: migration for migration in self.migrations}

    async def migrate(self, engine: AsyncEngine) -> List[str]:
        """Apply pending migrations.

        Returns:
            Names of the migrations applied by this call

        Raises:
            StorageFatalError: If the schema could not be brought up to date
        """
        try:
            async with engine.begin() as conn:
                return await conn.run_sync(self._migrate)
        except StorageFatalError:
            raise
        except (SQLAlchemyError, sqlite3.Error, OSError) as e:
            logger.error(f"Error running migrations: {e}")
            raise StorageFatalError(f"Could not apply migrations: {e}") from e

    def applied_migrations(self, connection: Connection) -> List[str]:
        ledger.create(connection, checkfirst=True)
        result = connection.execute(select(ledger.c.name).order_by(ledger.c.position))
        return list(result.scalars().all())

    def _migrate(self, connection: Connection) -> List[str]:
        applied = self.applied_migrations(connection)

        if self.erase_database_on_schema_change and self._schema_changed(connection, applied):
            logger.warning("Database schema changed, erasing database")
            self._erase(connection)
            applied = self.applied_migrations(connection)

        unknown = [name for name in applied if name not in self._by_name]
        if unknown:
            raise StorageFatalError(
                f"Database was migrated by a newer or different version: {unknown}"
            )

        operations = Operations(MigrationContext.configure(connection))
        pending = [m for m in self.migrations if m.name not in applied]
        for position, migration in enumerate(pending, start=len(applied)):
            logger.info(f"Applying migration {migration.name}")
            migration.upgrade(operations)
            connection.execute(
                insert(ledger).values(
                    position=position,
                    name=migration.name,
                    applied_at=datetime.now(timezone.utc),
                )
            )

        if pending:
            logger.info(f"Applied {len(pending)} migration(s)")
        else:
            logger.debug("Database schema is up to date")
        return [migration.name for migration in pending]

    def _schema_changed(self, connection: Connection, applied: List[str]) -> bool:
        if any(name not in self._by_name for name in applied):
            return True

        expected = self._reference_schema([self._by_name[name] for name in applied])
        return expected != schema_signature(connection)

    def _reference_schema(self, migrations: List[Migration]) -> SchemaSignature:
        """Replay migrations into a scratch in-memory database and capture its schema."""
        engine = create_engine("sqlite://")
        try:
            with engine.begin() as connection:
                operations = Operations(MigrationContext.configure(connection))
                for migration in migrations:
                    migration.upgrade(operations)
                return schema_signature(connection)
        finally:
            engine.dispose()

    def _erase(self, connection: Connection) -> None:
        existing = MetaData()
        existing.reflect(connection)
        # drop_all orders tables so children go before the parents they reference
        existing.drop_all(connection)
