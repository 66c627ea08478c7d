"""Transaction manager for atomic multi-statement writes."""

import time
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine

from mailcache.core.database.config import DatabaseConfig
from mailcache.utils.errors import StorageConnectionError, TransactionTimeoutError
from mailcache.utils.logging import get_logger

logger = get_logger(__name__)


class TransactionManager:
    """Runs a block of statements as one SQLite transaction.

    Provides explicit transaction control with:
    - Automatic commit/rollback
    - Timeout enforcement (checked before commit)
    - Transaction duration logging

    Usage:
        async with TransactionManager(engine) as tx:
            await tx.connection.execute(query)
    """

    def __init__(
        self,
        engine: AsyncEngine,
        config: Optional[DatabaseConfig] = None,
        timeout: Optional[float] = None,
    ):
        """Initialise transaction manager.

        Args:
            engine: SQLAlchemy async engine
            config: Database configuration (defaults read from the environment)
            timeout: Transaction timeout in seconds (uses config default if None)
        """
        self.engine = engine
        self.config = config or DatabaseConfig()
        self.timeout = timeout or self.config.transaction_timeout

        self._connection: Optional[AsyncConnection] = None
        self._transaction = None
        self._start_time: Optional[float] = None

    async def __aenter__(self) -> "TransactionManager":
        """Start transaction."""
        self._start_time = time.monotonic()

        try:
            self._connection = await self.engine.connect()
            self._transaction = await self._connection.begin()
            logger.debug(f"Transaction started (timeout={self.timeout}s)")
            return self

        except Exception as e:
            if self._connection:
                await self._connection.close()
            raise StorageConnectionError(
                "Failed to start transaction",
                details={"error": str(e)},
            ) from e

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Commit or rollback transaction."""
        duration = time.monotonic() - self._start_time if self._start_time else 0

        try:
            if exc_type is not None:
                await self._transaction.rollback()
                logger.warning(
                    f"Transaction rolled back due to {exc_type.__name__}: {exc_val} "
                    f"(duration={duration:.2f}s)"
                )
                return False

            if duration > self.timeout:
                await self._transaction.rollback()
                logger.warning(
                    f"Transaction exceeded timeout: {duration:.2f}s > {self.timeout}s"
                )
                raise TransactionTimeoutError(
                    f"Transaction timeout after {duration:.2f}s",
                    details={"timeout": self.timeout, "duration": duration},
                )

            await self._transaction.commit()
            logger.debug(f"Transaction committed (duration={duration:.2f}s)")

            if self.config.log_slow_queries and duration > self.config.slow_query_threshold:
                logger.warning(
                    f"Slow transaction: {duration:.2f}s "
                    f"(threshold={self.config.slow_query_threshold}s)"
                )
            return False

        finally:
            await self._connection.close()

    @property
    def connection(self) -> AsyncConnection:
        """Get the transaction's connection.

        Raises:
            RuntimeError: If accessed outside transaction context
        """
        if not self._connection:
            raise RuntimeError("Connection only available within transaction context")

        return self._connection
