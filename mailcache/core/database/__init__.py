"""Local store: SQLite cache tables, repositories and the store facade."""

from .base import create_engine, ensure_schema
from .config import DatabaseConfig
from .engine_manager import EngineManager
from .store import BODY_UNAVAILABLE, DEGRADED_BODY_PREFIX, LocalStore
from .transaction import TransactionManager

__all__ = [
    "BODY_UNAVAILABLE",
    "DEGRADED_BODY_PREFIX",
    "DatabaseConfig",
    "EngineManager",
    "LocalStore",
    "TransactionManager",
    "create_engine",
    "ensure_schema",
]
