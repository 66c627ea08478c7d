"""Engine manager wrapping SQLAlchemy connection pool."""

import asyncio
from pathlib import Path
from typing import Optional

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine

from mailcache.core.database.base import create_engine, dispose_engine, ensure_schema
from mailcache.core.database.config import DatabaseConfig
from mailcache.utils.errors import StorageConnectionError
from mailcache.utils.logging import get_logger

logger = get_logger(__name__)


class EngineManager:
    """Manages SQLAlchemy async engine lifecycle and health."""

    def __init__(
        self,
        db_path: Path,
        config: Optional[DatabaseConfig] = None,
    ) -> None:
        """Initialise engine manager.

        Args:
            db_path: Path to SQLite database file
            config: Database configuration (defaults read from the environment)
        """
        self.db_path = db_path
        self.config = config or DatabaseConfig()

        self._engine: Optional[AsyncEngine] = None
        self._schema_ready = False
        self._lock = asyncio.Lock()

    async def get_engine(self) -> AsyncEngine:
        """Get or create the async engine, ensuring the schema on first use.

        Raises:
            StorageConnectionError: If engine creation or schema setup fails
        """
        async with self._lock:
            if self._engine is None:
                try:
                    self._engine = create_engine(self.db_path, config=self.config)
                    logger.info(f"Engine initialised: {self.db_path}")
                except Exception as e:
                    raise StorageConnectionError(
                        "Failed to create database engine",
                        details={"db_path": str(self.db_path), "error": str(e)},
                    ) from e

            if not self._schema_ready:
                try:
                    await ensure_schema(self._engine)
                except Exception as e:
                    raise StorageConnectionError(
                        "Failed to initialise database schema",
                        details={"db_path": str(self.db_path), "error": str(e)},
                    ) from e
                self._schema_ready = True

        return self._engine

    async def close(self) -> None:
        """Dispose of engine and close all pooled connections."""
        if self._engine:
            try:
                await dispose_engine(self._engine)
            except Exception as e:
                logger.error(f"Error disposing engine: {e}")
            finally:
                self._engine = None
                self._schema_ready = False

    async def health_check(self) -> bool:
        """Execute a trivial query to verify the database is reachable."""
        try:
            engine = await self.get_engine()

            async with engine.connect() as conn:
                result = await conn.execute(text("SELECT 1"))
                row = result.fetchone()
                healthy = row is not None and row[0] == 1

            if healthy:
                logger.debug("Database health check: OK")
            else:
                logger.warning("Database health check: FAILED")

            return healthy

        except Exception as e:
            logger.error(f"Database health check failed: {e}")
            return False

    # Context manager support
    async def __aenter__(self):
        """Context manager entry."""
        await self.get_engine()

        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> bool:
        """Context manager exit."""
        await self.close()
        return False
