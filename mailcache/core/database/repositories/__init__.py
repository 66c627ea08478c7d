"""Repositories over the cache tables."""

from .base import Repository
from .draft import LocalDraftRepository
from .email import EmailRepository
from .mailbox import MailboxRepository
from .pending import PendingActionRepository
from .settings import SettingsRepository

__all__ = [
    "EmailRepository",
    "LocalDraftRepository",
    "MailboxRepository",
    "PendingActionRepository",
    "Repository",
    "SettingsRepository",
]
