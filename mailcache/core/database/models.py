"""SQLAlchemy table definitions with proper types and constraints."""

from sqlalchemy import (
    Boolean,
    Column,
    ForeignKey,
    Index,
    Integer,
    String,
    Table,
    Text,
)

from mailcache.core.database.base import metadata

mailboxes = Table(
    "mailboxes",
    metadata,
    Column("id", String(255), primary_key=True),
    Column("name", String(500), nullable=False),
    Column("role", String(20), nullable=False, default="custom", server_default="custom"),
    Column("parent_id", String(255), nullable=True),
    Column("sort_order", Integer, nullable=False, default=0, server_default="0"),
    Column("unread_count", Integer, nullable=False, default=0, server_default="0"),
    Column("total_count", Integer, nullable=False, default=0, server_default="0"),
    Column("updated_at", String(32), nullable=True),  # ISO8601 with timezone
    Index("ix_mailboxes_role", "role"),
)

emails = Table(
    "emails",
    metadata,
    Column("id", String(255), primary_key=True),
    Column("thread_id", String(255), nullable=False, default="", server_default=""),
    Column("subject", String(1000), nullable=False, default="", server_default=""),
    Column("from_addr", Text, nullable=False, default="", server_default=""),
    Column("to_addr", Text, nullable=False, default="", server_default=""),
    Column("cc_addr", Text, nullable=False, default="", server_default=""),
    Column("bcc_addr", Text, nullable=False, default="", server_default=""),
    Column("reply_to", Text, nullable=False, default="", server_default=""),
    Column("preview", Text, nullable=False, default="", server_default=""),
    Column("body_text", Text, nullable=True),
    Column("body_html", Text, nullable=True),
    Column("date", String(32), nullable=False, default="", server_default=""),
    Column("is_unread", Boolean, nullable=False, default=False, server_default="0"),
    Column("is_flagged", Boolean, nullable=False, default=False, server_default="0"),
    Column("is_draft", Boolean, nullable=False, default=False, server_default="0"),
    Column("keywords", Text, nullable=False, default="[]", server_default="[]"),  # JSON array
    Column("updated_at", String(32), nullable=True),
    Index("ix_emails_thread", "thread_id"),
    Index("ix_emails_date", "date"),
)

# Mailboxes are not a foreign key target: memberships may reference mailboxes
# that have not been listed yet.
email_mailboxes = Table(
    "email_mailboxes",
    metadata,
    Column(
        "email_id",
        String(255),
        ForeignKey("emails.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column("mailbox_id", String(255), primary_key=True),
    Index("ix_email_mailboxes_mailbox", "mailbox_id"),
)

pending_actions = Table(
    "pending_actions",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("type", String(20), nullable=False),
    Column("email_id", String(255), nullable=True),
    Column("data", Text, nullable=False, default="{}", server_default="{}"),  # JSON object
    Column("created_at", String(32), nullable=False),
    Index("ix_pending_actions_email", "email_id"),
    sqlite_autoincrement=True,
)

local_drafts = Table(
    "local_drafts",
    metadata,
    Column("id", String(255), primary_key=True),
    Column("from_addr", Text, nullable=False, default="", server_default=""),
    Column("to_addr", Text, nullable=False, default="", server_default=""),
    Column("subject", String(1000), nullable=False, default="", server_default=""),
    Column("body", Text, nullable=False, default="", server_default=""),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
)

config = Table(
    "config",
    metadata,
    Column("key", String(255), primary_key=True),
    Column("value", Text, nullable=True),
)

# Export all tables
ALL_TABLES = {
    "mailboxes": mailboxes,
    "emails": emails,
    "email_mailboxes": email_mailboxes,
    "pending_actions": pending_actions,
    "local_drafts": local_drafts,
    "config": config,
}
