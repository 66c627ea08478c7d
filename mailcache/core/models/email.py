"""Email domain models"""

from dataclasses import dataclass, field
from typing import List, Optional


@dataclass
class Email:
    """Cached email message.

    Address fields hold rendered address strings as delivered by the remote
    service (``"Name <addr>, other@addr"``). ``body_text``/``body_html`` stay
    ``None`` until a body has been fetched; the store keeps previously cached
    bodies when an email is re-saved without one.
    """

    id: str
    thread_id: str = ""
    subject: str = ""
    from_addr: str = ""
    to_addr: str = ""
    cc_addr: str = ""
    bcc_addr: str = ""
    reply_to: str = ""
    preview: str = ""
    date: str = ""
    is_unread: bool = False
    is_flagged: bool = False
    is_draft: bool = False
    mailbox_ids: List[str] = field(default_factory=list)
    keywords: List[str] = field(default_factory=list)
    body_text: Optional[str] = None
    body_html: Optional[str] = None
    updated_at: Optional[str] = None

    def __post_init__(self):
        if not self.id or not self.id.strip():
            raise ValueError("Email ID cannot be empty")

    def mark_as_read(self) -> None:
        """Mark email as read."""
        self.is_unread = False

    def mark_as_unread(self) -> None:
        """Mark email as unread."""
        self.is_unread = True

    def move_to(self, from_mailbox_id: str, to_mailbox_id: str) -> None:
        """Swap one mailbox membership for another."""
        ids = [m for m in self.mailbox_ids if m != from_mailbox_id]
        if to_mailbox_id not in ids:
            ids.append(to_mailbox_id)
        self.mailbox_ids = ids

    def in_mailbox(self, mailbox_id: str) -> bool:
        return mailbox_id in self.mailbox_ids
