import asyncio
import os
from contextlib import asynccontextmanager
from enum import Enum, auto
from pathlib import Path
from typing import AsyncGenerator, AsyncIterator, Awaitable, Callable, List, Optional

from loguru import logger
from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from campaign_cache.config import CacheConfig
from campaign_cache.exceptions import StorageFatalError
from campaign_cache.migrations import MIGRATIONS, Migrator

CommitHook = Callable[[], Awaitable[None]]

# Session info key set by repositories when a statement changed at least one row
ROWS_CHANGED = "rows_changed"


class DatabaseType(Enum):
    """Types of supported databases."""

    MEMORY = auto()
    FILESYSTEM = auto()

    @classmethod
    def get_db_url(cls, db_path: Path, db_type: "DatabaseType") -> str:
        """Get SQLAlchemy URL for database path."""
        if db_type == cls.MEMORY:
            logger.info("Using in-memory SQLite database")
            return "sqlite+aiosqlite://"

        return f"sqlite+aiosqlite:///{db_path}"


def _configure_sqlite_connection(dbapi_connection, connection_record) -> None:
    """Set pragmas on every new SQLite connection.

    WAL lets the widget process read while the app writes, and foreign keys are
    off by default in SQLite so they must be enabled per connection.
    """
    cursor = dbapi_connection.cursor()
    try:
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA busy_timeout=10000")
        cursor.execute("PRAGMA synchronous=NORMAL")
        cursor.execute("PRAGMA foreign_keys=ON")
        if os.name == "nt":  # pragma: no cover
            cursor.execute("PRAGMA locking_mode=NORMAL")
    finally:
        cursor.close()


def create_engine_and_session(
    db_path: Path, db_type: DatabaseType = DatabaseType.FILESYSTEM
) -> tuple[AsyncEngine, async_sessionmaker[AsyncSession]]:
    """Create engine and session maker with SQLite pragmas configured."""
    db_url = DatabaseType.get_db_url(db_path, db_type)
    logger.debug(f"Creating engine for db_url: {db_url}")
    engine = create_async_engine(db_url, connect_args={"check_same_thread": False})
    event.listen(engine.sync_engine, "connect", _configure_sqlite_connection)
    session_maker = async_sessionmaker(engine, expire_on_commit=False)
    return engine, session_maker


@asynccontextmanager
async def scoped_session(
    session_maker: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """
    Get a session with proper lifecycle management.

    Commits when the block exits normally and rolls back on error.

    Args:
        session_maker: Session maker to create sessions from
    """
    session = session_maker()
    try:
        yield session
        await session.commit()
    except Exception:
        await session.rollback()
        raise
    finally:
        await session.close()


class Database:
    """Single point of access to the cache database.

    All writes go through ``write()``, which serializes them behind one lock so
    there is never more than one writer. Reads open their own sessions and may
    run concurrently with each other and with the writer. After a write commits
    and changed rows, every registered commit hook runs while the writer role is
    still held, so hooks observe committed writes in order.
    """

    def __init__(self, engine: AsyncEngine, session_maker: async_sessionmaker[AsyncSession]):
        self.engine = engine
        self.session_maker = session_maker
        self._write_lock = asyncio.Lock()
        self._commit_hooks: List[CommitHook] = []
        self._closed = False

    @classmethod
    async def open(
        cls,
        config: CacheConfig,
        db_type: DatabaseType = DatabaseType.FILESYSTEM,
        migrator: Optional[Migrator] = None,
    ) -> "Database":
        """Create the engine and bring the schema up to date.

        Raises:
            StorageFatalError: If migrations cannot be applied
        """
        try:
            db_path = (
                config.database_path if db_type == DatabaseType.FILESYSTEM else Path(":memory:")
            )
        except OSError as e:
            raise StorageFatalError(f"Database location unavailable: {e}") from e
        engine, session_maker = create_engine_and_session(db_path, db_type)
        migrator = migrator or Migrator(
            MIGRATIONS,
            erase_database_on_schema_change=config.erase_database_on_schema_change,
        )
        try:
            await migrator.migrate(engine)
        except Exception:
            await engine.dispose()
            raise
        logger.info(f"Database ready: {db_path}")
        return cls(engine, session_maker)

    @property
    def write_lock(self) -> asyncio.Lock:
        """Held for the duration of every write and its commit hooks."""
        return self._write_lock

    def add_commit_hook(self, hook: CommitHook) -> None:
        self._commit_hooks.append(hook)

    @property
    def closed(self) -> bool:
        return self._closed

    @asynccontextmanager
    async def read(self) -> AsyncIterator[AsyncSession]:
        """Open a read session."""
        async with scoped_session(self.session_maker) as session:
            yield session

    @asynccontextmanager
    async def write(self) -> AsyncIterator[AsyncSession]:
        """Open a session holding the writer role.

        Everything executed in the block commits atomically or not at all.
        """
        async with self._write_lock:
            async with scoped_session(self.session_maker) as session:
                yield session
                changed = session.info.get(ROWS_CHANGED, 0)

            if changed:
                for hook in self._commit_hooks:
                    await hook()

    async def dispose(self) -> None:
        if self._closed:
            return
        self._closed = True
        await self.engine.dispose()
        logger.debug("Disposed database engine")


@asynccontextmanager
async def engine_session_factory(
    db_path: Path,
    db_type: DatabaseType = DatabaseType.MEMORY,
) -> AsyncGenerator[tuple[AsyncEngine, async_sessionmaker[AsyncSession]], None]:
    """Create engine and session factory.

    Note: This is primarily used for testing where we want a fresh database
    for each test. For application use, use Database.open() instead.
    """
    engine, session_maker = create_engine_and_session(db_path, db_type)
    try:
        yield engine, session_maker
    finally:
        await engine.dispose()
