"""
Base service class for the soccer league bot.

Services hold long-lived state (such as the settings cache) on top of the
league Database. Reads go through a plain session, writes through the
Database's serialised transaction so they never interleave with a lifecycle
operation.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Callable, Any, Tuple, Type

from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

class BaseService:
    """Base class for all services backed by the league Database."""

    def __init__(self, database):
        """
        Initialize base service.

        Args:
            database: Initialized Database instance
        """
        self.db = database

    @asynccontextmanager
    async def get_session(self) -> AsyncGenerator[AsyncSession, None]:
        """Read-only scope; nothing is committed."""
        async with self.db.get_session() as session:
            yield session

    @asynccontextmanager
    async def transaction(self) -> AsyncGenerator[AsyncSession, None]:
        """Serialised write scope, committed on success."""
        async with self.db.transaction() as session:
            yield session

    async def execute_with_retry(self, func: Callable, max_retries: int = 3,
                                 retry_on: Tuple[Type[Exception], ...] = (OperationalError,)) -> Any:
        """Execute a function, retrying on transient database errors (e.g. a locked SQLite file)."""
        for attempt in range(max_retries):
            try:
                return await func()
            except retry_on as e:
                if attempt == max_retries - 1:
                    raise
                logger.warning(f"Retry attempt {attempt + 1} for {func.__name__}: {e}")
                await asyncio.sleep(0.1 * (2 ** attempt))  # Exponential backoff
