"""mailcache: local-first cache and sync core for a mail client."""

__version__ = "0.1.0"
