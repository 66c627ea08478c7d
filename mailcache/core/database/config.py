"""Database configuration with environment variable support."""

import os
from dataclasses import dataclass, field


@dataclass
class DatabaseConfig:
    """Configuration for database connection and behavior."""

    # Connection pool settings
    pool_size: int = field(
        default_factory=lambda: int(os.getenv("MAILCACHE_DB_POOL_SIZE", "5"))
    )
    max_overflow: int = field(
        default_factory=lambda: int(os.getenv("MAILCACHE_DB_MAX_OVERFLOW", "10"))
    )
    pool_timeout: float = field(
        default_factory=lambda: float(os.getenv("MAILCACHE_DB_POOL_TIMEOUT", "30.0"))
    )

    # Query timeouts
    query_timeout: float = field(
        default_factory=lambda: float(os.getenv("MAILCACHE_DB_QUERY_TIMEOUT", "30.0"))
    )
    transaction_timeout: float = field(
        default_factory=lambda: float(
            os.getenv("MAILCACHE_DB_TRANSACTION_TIMEOUT", "60.0")
        )
    )

    # Logging
    echo: bool = field(
        default_factory=lambda: os.getenv("MAILCACHE_DB_ECHO", "false").lower()
        == "true"
    )
    log_slow_queries: bool = field(
        default_factory=lambda: os.getenv("MAILCACHE_DB_LOG_SLOW_QUERIES", "true").lower()
        == "true"
    )
    slow_query_threshold: float = field(
        default_factory=lambda: float(
            os.getenv("MAILCACHE_DB_SLOW_QUERY_THRESHOLD", "1.0")
        )
    )

    def __post_init__(self):
        """Validate configuration values."""
        if self.pool_size < 1:
            raise ValueError("pool_size must be >= 1")
        if self.max_overflow < 0:
            raise ValueError("max_overflow must be >= 0")
        if self.pool_timeout <= 0:
            raise ValueError("pool_timeout must be > 0")
        if self.query_timeout <= 0:
            raise ValueError("query_timeout must be > 0")
        if self.transaction_timeout <= 0:
            raise ValueError("transaction_timeout must be > 0")
