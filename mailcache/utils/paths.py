"""Centralized path definitions for mailcache.

Single source of truth for the application directory layout. The base
directory can be relocated with the ``MAILCACHE_HOME`` environment variable.
"""

import os
from pathlib import Path

# Base application directory
MAILCACHE_DIR = Path(os.getenv("MAILCACHE_HOME", str(Path.home() / ".mailcache")))

# Subdirectories
DATA_DIR = MAILCACHE_DIR / "data"
LOGS_DIR = MAILCACHE_DIR / "logs"

# Specific files
DATABASE_PATH = DATA_DIR / "mailcache.db"
CONFIG_PATH = MAILCACHE_DIR / "config.json"
