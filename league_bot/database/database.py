import asyncio
from typing import Optional
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy import delete, event
from contextlib import asynccontextmanager

from league_bot.config import Config
from league_bot.database.models import (
    Base, Team, Player, Membership, AssistantManager, Referee, Setting,
    PendingOffer, Match, FixturePosting, DemandConfirmation
)
from league_bot.utils.logger import setup_logger

# Children before parents so foreign keys never block the purge
PURGE_ORDER = (
    DemandConfirmation, PendingOffer, AssistantManager, Membership, Match,
    FixturePosting, Referee, Setting, Player, Team,
)


def to_async_url(database_url: str) -> str:
    """Convert a plain sqlite URL to its aiosqlite form."""
    if database_url.startswith('sqlite:///'):
        return database_url.replace('sqlite:///', 'sqlite+aiosqlite:///', 1)
    return database_url


class Database:
    def __init__(self, database_url: Optional[str] = None):
        self.logger = setup_logger(__name__)
        self.database_url = to_async_url(database_url or Config.DATABASE_URL)
        self.engine = None
        self.async_session = None
        # Serialises every read-check-write transaction in this process
        self._write_lock = asyncio.Lock()

    async def initialize(self):
        """Initialize the database connection and create tables"""
        self.logger.info("Initializing database...")

        self.engine = create_async_engine(
            self.database_url,
            echo=Config.DEBUG,
            future=True
        )

        if self.engine.dialect.name == 'sqlite':
            @event.listens_for(self.engine.sync_engine, "connect")
            def _enable_foreign_keys(dbapi_connection, connection_record):
                cursor = dbapi_connection.cursor()
                cursor.execute("PRAGMA foreign_keys=ON")
                cursor.close()

        self.async_session = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False
        )

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

        self.logger.info("Database initialized successfully")

    @asynccontextmanager
    async def get_session(self):
        """Get a database session for read-only work"""
        async with self.async_session() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise
            finally:
                await session.close()

    @asynccontextmanager
    async def transaction(self):
        """
        Create a transaction boundary for atomic operations.

        All work inside the context is committed together on success or rolled
        back together on failure. Transactions are serialised through a
        process-wide lock, so a validation read and the write that depends on
        it can never interleave with another command's transaction.

        Usage:
            async with db.transaction() as session:
                repo = LeagueRepository(session)
                ...

        Transactions must not be nested; pass the yielded session down instead.
        """
        async with self._write_lock:
            async with self.async_session() as session:
                try:
                    yield session
                    await session.commit()
                except Exception:
                    await session.rollback()
                    raise
                finally:
                    await session.close()

    async def purge_all(self, session: AsyncSession):
        """Delete every row of every league table inside the given session"""
        for model in PURGE_ORDER:
            await session.execute(delete(model))
        self.logger.warning("All league tables purged")

    async def close(self):
        """Close the database connection"""
        if self.engine:
            await self.engine.dispose()
            self.logger.info("Database connection closed")
