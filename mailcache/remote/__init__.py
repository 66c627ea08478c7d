"""Remote mail service seam."""

from .adapter import RemoteAdapter, call_remote

__all__ = ["RemoteAdapter", "call_remote"]
