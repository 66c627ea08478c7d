"""Assembly of a ready-to-use coordinator from application config."""

from typing import Optional

from mailcache.core.database import DatabaseConfig, LocalStore
from mailcache.remote import RemoteAdapter
from mailcache.utils.config_manager import ConfigManager
from mailcache.utils.logging import init_logging

from .coordinator import SyncCoordinator


async def build_coordinator(
    remote: RemoteAdapter,
    config_manager: Optional[ConfigManager] = None,
    db_config: Optional[DatabaseConfig] = None,
) -> SyncCoordinator:
    """Create the store and coordinator described by the config file.

    Args:
        remote: Remote service client to sync against
        config_manager: Loaded configuration (read from the default path if None)
        db_config: Engine tuning (read from the environment if None)
    """
    config_manager = config_manager or ConfigManager()
    config = config_manager.config

    init_logging(config.logging.log_level)

    store = LocalStore(config_manager.database_path, db_config)
    return await SyncCoordinator.create(
        store, remote, default_offline=config.sync.start_offline
    )
