"""
Database engine management.
Async SQLAlchemy engine over SQLite (aiosqlite), created once per process.
"""

from loguru import logger
from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from f1sync.datastore.models import Base


def _enable_foreign_keys(dbapi_connection, connection_record) -> None:
    # SQLite leaves foreign key enforcement off per connection
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class Database:
    """Owns the async engine and session factory for the process."""

    def __init__(self, url: str, echo: bool = False):
        self.url = url
        self.echo = echo
        self._engine: AsyncEngine | None = None
        self._session_factory: async_sessionmaker[AsyncSession] | None = None

    async def init(self) -> None:
        """Create the engine, the session factory and all tables."""
        if self._engine is not None:
            return

        kwargs = {}
        if ":memory:" in self.url:
            # every session must share the single in-memory connection
            kwargs = {
                "poolclass": StaticPool,
                "connect_args": {"check_same_thread": False},
            }

        self._engine = create_async_engine(
            self.url,
            echo=self.echo,
            future=True,
            **kwargs,
        )
        if self.url.startswith("sqlite"):
            event.listen(self._engine.sync_engine, "connect", _enable_foreign_keys)
        self._session_factory = async_sessionmaker(
            bind=self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info(f"Database initialized: {self.url}")

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        if self._session_factory is None:
            raise RuntimeError("Database not initialized. Call init() first.")
        return self._session_factory

    async def close(self) -> None:
        """Dispose of the engine's connections."""
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            self._session_factory = None
            logger.info("Database connections closed")
