"""Mailbox domain model"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class MailboxRole(Enum):
    """Mailbox roles that drive routing decisions."""

    INBOX = "inbox"
    ARCHIVE = "archive"
    DRAFTS = "drafts"
    SENT = "sent"
    TRASH = "trash"
    CUSTOM = "custom"

    @classmethod
    def from_string(cls, value: Optional[str]) -> "MailboxRole":
        """Create MailboxRole from a remote role string.

        Empty or unrecognised roles (e.g. "junk", "snoozed") are treated as
        custom folders.
        """
        if not value:
            return cls.CUSTOM

        try:
            return cls(value.lower())
        except ValueError:
            return cls.CUSTOM


@dataclass
class Mailbox:
    """Mirrored remote mailbox. Never created purely locally."""

    id: str
    name: str
    role: MailboxRole = MailboxRole.CUSTOM
    parent_id: Optional[str] = None
    sort_order: int = 0
    unread_count: int = 0
    total_count: int = 0

    def __post_init__(self):
        if not self.id or not self.id.strip():
            raise ValueError("Mailbox ID cannot be empty")
        if isinstance(self.role, str):
            self.role = MailboxRole.from_string(self.role)
