"""Row <-> domain model conversion helpers."""

import json
from datetime import datetime, timezone
from typing import Any, Dict, List

from mailcache.core.models import Email, LocalDraft, Mailbox, MailboxRole, PendingAction
from mailcache.core.models.actions import action_from_row


def utc_now() -> str:
    """Current time as an ISO8601 string with timezone."""
    return datetime.now(timezone.utc).isoformat()


def mailbox_to_row(mailbox: Mailbox) -> Dict[str, Any]:
    return {
        "id": mailbox.id,
        "name": mailbox.name,
        "role": mailbox.role.value,
        "parent_id": mailbox.parent_id or None,
        "sort_order": mailbox.sort_order,
        "unread_count": mailbox.unread_count,
        "total_count": mailbox.total_count,
        "updated_at": utc_now(),
    }


def row_to_mailbox(row) -> Mailbox:
    return Mailbox(
        id=row.id,
        name=row.name,
        role=MailboxRole.from_string(row.role),
        parent_id=row.parent_id,
        sort_order=row.sort_order or 0,
        unread_count=row.unread_count or 0,
        total_count=row.total_count or 0,
    )


def email_to_row(email: Email) -> Dict[str, Any]:
    """Convert Email to column values.

    Body columns are only included when the email carries a body, so an
    upsert from a list fetch never wipes a cached body.
    """
    row = {
        "id": email.id,
        "thread_id": email.thread_id or "",
        "subject": email.subject or "",
        "from_addr": email.from_addr or "",
        "to_addr": email.to_addr or "",
        "cc_addr": email.cc_addr or "",
        "bcc_addr": email.bcc_addr or "",
        "reply_to": email.reply_to or "",
        "preview": email.preview or "",
        "date": email.date or "",
        "is_unread": email.is_unread,
        "is_flagged": email.is_flagged,
        "is_draft": email.is_draft,
        "keywords": json.dumps(email.keywords),
        "updated_at": utc_now(),
    }

    if email.body_text is not None:
        row["body_text"] = email.body_text
    if email.body_html is not None:
        row["body_html"] = email.body_html

    return row


def row_to_email(row, mailbox_ids: List[str]) -> Email:
    """Convert database row (plus its membership ids) to Email."""
    return Email(
        id=row.id,
        thread_id=row.thread_id,
        subject=row.subject,
        from_addr=row.from_addr,
        to_addr=row.to_addr,
        cc_addr=row.cc_addr,
        bcc_addr=row.bcc_addr,
        reply_to=row.reply_to,
        preview=row.preview,
        date=row.date,
        is_unread=bool(row.is_unread),
        is_flagged=bool(row.is_flagged),
        is_draft=bool(row.is_draft),
        mailbox_ids=list(mailbox_ids),
        keywords=json.loads(row.keywords or "[]"),
        body_text=row.body_text,
        body_html=row.body_html,
        updated_at=row.updated_at,
    )


def row_to_pending_action(row) -> PendingAction:
    return PendingAction(
        id=row.id,
        action=action_from_row(row.type, row.email_id, json.loads(row.data or "{}")),
        created_at=row.created_at,
    )


def row_to_local_draft(row) -> LocalDraft:
    return LocalDraft(
        id=row.id,
        from_addr=row.from_addr,
        to_addr=row.to_addr,
        subject=row.subject,
        body=row.body,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
