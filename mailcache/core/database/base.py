"""Base database infrastructure with SQLAlchemy async engine."""

from pathlib import Path
from typing import Optional

from sqlalchemy import MetaData, event, inspect, text
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import AsyncAdaptedQueuePool

from mailcache.core.database.config import DatabaseConfig
from mailcache.utils.logging import get_logger

logger = get_logger(__name__)

# Shared metadata for all tables
metadata = MetaData(
    naming_convention={
        "ix": "ix_%(column_0_label)s",
        "uq": "uq_%(table_name)s_%(column_0_name)s",
        "ck": "ck_%(table_name)s_%(constraint_name)s",
        "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
        "pk": "pk_%(table_name)s",
    }
)


def create_engine(
    db_path: Path,
    config: Optional[DatabaseConfig] = None,
) -> AsyncEngine:
    """Create async SQLAlchemy engine with connection pooling.

    Args:
        db_path: Path to SQLite database file
        config: Database configuration (defaults read from the environment)

    Returns:
        Configured async engine
    """
    config = config or DatabaseConfig()

    db_path.parent.mkdir(parents=True, exist_ok=True)

    engine = create_async_engine(
        f"sqlite+aiosqlite:///{db_path}",
        echo=config.echo,
        poolclass=AsyncAdaptedQueuePool,
        pool_size=config.pool_size,
        max_overflow=config.max_overflow,
        pool_timeout=config.pool_timeout,
        pool_pre_ping=True,
        connect_args={
            "timeout": config.query_timeout,
            "check_same_thread": False,
        },
    )

    @event.listens_for(engine.sync_engine, "connect")
    def set_sqlite_pragma(dbapi_conn, connection_record):
        """Set SQLite pragmas for durability and concurrent readers."""
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA synchronous=NORMAL")
        cursor.execute(f"PRAGMA busy_timeout={int(config.query_timeout * 1000)}")
        cursor.close()

    logger.info(
        f"Database engine created: {db_path} "
        f"(pool_size={config.pool_size}, max_overflow={config.max_overflow})"
    )

    return engine


def _add_missing_columns(sync_conn: Connection) -> None:
    """ALTER existing tables to add columns declared since they were created."""
    inspector = inspect(sync_conn)

    for table in metadata.sorted_tables:
        existing = {col["name"] for col in inspector.get_columns(table.name)}

        for column in table.columns:
            if column.name in existing:
                continue

            col_type = column.type.compile(dialect=sync_conn.dialect)
            ddl = f'ALTER TABLE {table.name} ADD COLUMN "{column.name}" {col_type}'
            if column.server_default is not None:
                default = column.server_default.arg
                if hasattr(default, "text"):
                    default = default.text
                else:
                    default = "'" + str(default).replace("'", "''") + "'"
                ddl += f" DEFAULT {default}"

            sync_conn.execute(text(ddl))
            logger.info(f"Added column {table.name}.{column.name}")


def _create_schema(sync_conn: Connection) -> None:
    metadata.create_all(sync_conn, checkfirst=True)
    _add_missing_columns(sync_conn)


async def ensure_schema(engine: AsyncEngine) -> None:
    """Create missing tables, indexes and columns. Safe to run on every start-up."""
    async with engine.begin() as conn:
        await conn.run_sync(_create_schema)

    logger.debug("Database schema ensured")


async def dispose_engine(engine: AsyncEngine) -> None:
    """Dispose of engine and close all connections.

    Args:
        engine: Engine to dispose
    """
    await engine.dispose()
    logger.info("Database engine disposed")
