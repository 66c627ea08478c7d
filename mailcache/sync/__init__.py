"""Sync coordination between the local store and the remote service."""

from .constants import OFFLINE_MODE_KEY, PAGE_SIZE
from .coordinator import SyncCoordinator
from .factory import build_coordinator
from .results import (
    ConnectivityMode,
    EmailPage,
    MutationResult,
    ReplayOutcome,
    ReplayReport,
    ReplayStatus,
    RequestTag,
)

__all__ = [
    "ConnectivityMode",
    "EmailPage",
    "MutationResult",
    "OFFLINE_MODE_KEY",
    "PAGE_SIZE",
    "ReplayOutcome",
    "ReplayReport",
    "ReplayStatus",
    "RequestTag",
    "SyncCoordinator",
    "build_coordinator",
]
