"""Mapping of actions onto remote calls and their local mirror."""

from datetime import datetime, timezone
from typing import Optional

from mailcache.core.database import LocalStore
from mailcache.core.models import (
    COMPOSE_TYPES,
    ActionType,
    Email,
    MailAction,
    MailboxRole,
    is_local_id,
)
from mailcache.remote import RemoteAdapter, call_remote
from mailcache.utils.logging import get_logger

from .constants import PREVIEW_LENGTH

logger = get_logger(__name__)


async def dispatch(remote: RemoteAdapter, action: MailAction) -> Optional[str]:
    """Issue the remote call(s) for an action.

    Actions on a local draft, other than composing it, have no remote
    counterpart and issue no call.

    Returns:
        The server id for send/save_draft, otherwise None.
    """
    action_type = action.action_type

    if action_type not in COMPOSE_TYPES and is_local_id(action.email_id):
        logger.debug(f"{action_type.value} on local draft {action.email_id}: no remote call")
        return None

    if action_type == ActionType.DELETE:
        await call_remote("delete_email", remote.delete_email, action.email_id)
        return None

    if action_type == ActionType.MOVE:
        await call_remote(
            "move_email",
            remote.move_email,
            action.email_id,
            action.from_mailbox_id,
            action.to_mailbox_id,
        )
        return None

    if action_type == ActionType.SET_FLAGS:
        if action.unread is not None:
            await call_remote("set_unread", remote.set_unread, action.email_id, action.unread)
        if action.flagged is not None:
            await call_remote("set_flagged", remote.set_flagged, action.email_id, action.flagged)
        return None

    # Local ids never leave the device
    draft_id = None if is_local_id(action.draft_id) else action.draft_id
    func = remote.send_email if action_type == ActionType.SEND else remote.save_draft

    return await call_remote(
        action_type.value,
        func,
        draft_id,
        action.from_addr,
        action.to_addr,
        action.subject,
        action.body,
    )


def _preview(body: str) -> str:
    text = " ".join(body.split())
    return text[:PREVIEW_LENGTH]


def composed_email(action: MailAction, remote_id: str, mailbox_id: str) -> Email:
    """Email row for a message the server has just accepted."""
    return Email(
        id=remote_id,
        subject=action.subject,
        from_addr=action.from_addr,
        to_addr=action.to_addr,
        preview=_preview(action.body),
        body_text=action.body,
        date=datetime.now(timezone.utc).isoformat(),
        is_draft=action.action_type == ActionType.SAVE_DRAFT,
        mailbox_ids=[mailbox_id],
    )


class LocalMirror:
    """Applies confirmed remote changes to the local store."""

    def __init__(self, store: LocalStore):
        self.store = store

    async def promote(self, action: MailAction, remote_id: str) -> int:
        """Record a sent or saved message under its server id.

        The message is filed in the sent or drafts mailbox when one is
        cached; otherwise only the draft bookkeeping is done.

        Returns:
            Number of queued actions retargeted to ``remote_id``.
        """
        role = MailboxRole.SENT if action.action_type == ActionType.SEND else MailboxRole.DRAFTS
        mailbox = await self.store.get_mailbox_by_role(role)
        email = composed_email(action, remote_id, mailbox.id) if mailbox else None

        if mailbox is None:
            logger.debug(f"No {role.value} mailbox cached; not filing {remote_id}")

        return await self.store.promote_local_draft(
            None, action.draft_id, remote_id, email
        )

    async def apply(self, action: MailAction, remote_id: Optional[str] = None) -> None:
        action_type = action.action_type

        if action_type == ActionType.DELETE:
            if is_local_id(action.email_id):
                await self.store.delete_local_draft(action.email_id)
            else:
                await self.store.delete_email(action.email_id)
        elif action_type == ActionType.MOVE:
            await self.store.move_email(
                action.email_id, action.from_mailbox_id, action.to_mailbox_id
            )
        elif action_type == ActionType.SET_FLAGS:
            await self.store.update_email_flags(
                action.email_id, unread=action.unread, flagged=action.flagged
            )
        elif remote_id:
            await self.promote(action, remote_id)
