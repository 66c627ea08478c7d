"""Local store: the single owner of persisted cache state."""

from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncConnection

from mailcache.core.models import (
    ActionType,
    Email,
    LocalDraft,
    MailAction,
    Mailbox,
    MailboxRole,
    PendingAction,
    is_local_id,
    new_local_id,
    parse_action,
)
from mailcache.utils.errors import MailCacheError, PartialWriteError, StorageError
from mailcache.utils.logging import async_log_call, get_logger
from mailcache.utils.paths import DATABASE_PATH

from .config import DatabaseConfig
from .engine_manager import EngineManager
from .repositories import (
    EmailRepository,
    LocalDraftRepository,
    MailboxRepository,
    PendingActionRepository,
    SettingsRepository,
)
from .transaction import TransactionManager

logger = get_logger(__name__)

DEGRADED_BODY_PREFIX = "[Full email body not cached - showing preview]\n\n"
BODY_UNAVAILABLE = "[Email body not available offline]"


class LocalStore:
    """Async SQLite-backed cache of mailboxes, emails, drafts and queued writes.

    Every public operation runs in its own transaction. Multi-row writes
    either land completely or raise :class:`PartialWriteError` after a full
    rollback; any other storage failure surfaces as :class:`StorageError`
    with the operation name in ``details``.
    """

    def __init__(
        self, db_path: Optional[Path] = None, config: Optional[DatabaseConfig] = None
    ) -> None:
        self.db_path = Path(db_path) if db_path else DATABASE_PATH
        self.config = config or DatabaseConfig()
        self.engine_mgr = EngineManager(self.db_path, self.config)

        self.mailboxes = MailboxRepository()
        self.emails = EmailRepository()
        self.pending = PendingActionRepository()
        self.drafts = LocalDraftRepository()
        self.settings = SettingsRepository()

    @asynccontextmanager
    async def _transaction(
        self, operation: str, multi_row: bool = False, **context
    ) -> AsyncIterator[AsyncConnection]:
        """Run a block in one transaction, wrapping storage failures."""
        engine = await self.engine_mgr.get_engine()

        try:
            async with TransactionManager(engine, self.config) as tx:
                yield tx.connection
        except MailCacheError:
            raise
        except SQLAlchemyError as e:
            error_cls = PartialWriteError if multi_row else StorageError
            raise error_cls(
                f"{operation} failed: {e}",
                details={"operation": operation, "error": str(e), **context},
            ) from e

    ## Lifecycle

    @async_log_call
    async def initialise(self) -> None:
        """Create missing tables, indexes and columns."""
        await self.engine_mgr.get_engine()
        logger.info(f"Local store ready: {self.db_path}")

    async def health_check(self) -> bool:
        return await self.engine_mgr.health_check()

    async def close(self) -> None:
        await self.engine_mgr.close()

    async def __aenter__(self) -> "LocalStore":
        await self.initialise()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> bool:
        await self.close()
        return False

    ## Mailboxes

    @async_log_call
    async def save_mailboxes(self, mailboxes: List[Mailbox]) -> None:
        async with self._transaction("save_mailboxes", multi_row=True) as conn:
            count = await self.mailboxes.save_batch(conn, mailboxes)

        logger.debug(f"Saved {count} mailboxes")

    @async_log_call
    async def get_mailboxes(self) -> List[Mailbox]:
        """All cached mailboxes ordered by (sort_order, name)."""
        async with self._transaction("get_mailboxes") as conn:
            return await self.mailboxes.find_all(conn)

    async def get_mailbox(self, mailbox_id: str) -> Optional[Mailbox]:
        async with self._transaction("get_mailbox", mailbox_id=mailbox_id) as conn:
            return await self.mailboxes.find_by_id(conn, mailbox_id)

    async def get_mailbox_by_role(self, role: MailboxRole) -> Optional[Mailbox]:
        async with self._transaction("get_mailbox_by_role", role=role.value) as conn:
            return await self.mailboxes.find_by_role(conn, role)

    ## Emails

    @async_log_call
    async def save_emails(self, emails: List[Email]) -> None:
        """Upsert emails and replace each one's memberships, all or nothing.

        Memberships not named in an email's ``mailbox_ids`` are dropped, so
        callers must pass the complete list.
        """
        if not emails:
            return

        async with self._transaction("save_emails", multi_row=True, count=len(emails)) as conn:
            for email in emails:
                await self.emails.save(conn, email)

        logger.debug(f"Saved {len(emails)} emails")

    @async_log_call
    async def get_emails(self, mailbox_id: str, offset: int = 0, limit: int = 20) -> List[Email]:
        """One page of a mailbox's emails, newest first."""
        async with self._transaction("get_emails", mailbox_id=mailbox_id) as conn:
            return await self.emails.find_by_mailbox(conn, mailbox_id, limit=limit, offset=offset)

    async def get_email(self, email_id: str) -> Optional[Email]:
        async with self._transaction("get_email", email_id=email_id) as conn:
            return await self.emails.find_by_id(conn, email_id)

    @async_log_call
    async def get_email_body(self, email_id: str) -> Optional[str]:
        """Cached body text, degrading to the marked preview, then a sentinel.

        Returns:
            The body text, or ``None`` if the email itself is not cached.
        """
        async with self._transaction("get_email_body", email_id=email_id) as conn:
            row = await self.emails.get_body_columns(conn, email_id)

        if row is None:
            return None
        if row.body_text:
            return row.body_text
        if row.preview:
            return DEGRADED_BODY_PREFIX + row.preview

        return BODY_UNAVAILABLE

    async def save_email_body(self, email_id: str, text: str) -> bool:
        """Cache a body for an already cached email. Returns False if absent."""
        async with self._transaction("save_email_body", email_id=email_id) as conn:
            return await self.emails.set_columns(conn, email_id, body_text=text)

    async def save_email_html_body(self, email_id: str, html: str) -> bool:
        async with self._transaction("save_email_html_body", email_id=email_id) as conn:
            return await self.emails.set_columns(conn, email_id, body_html=html)

    async def get_email_html_body(self, email_id: str) -> Optional[str]:
        async with self._transaction("get_email_html_body", email_id=email_id) as conn:
            row = await self.emails.get_body_columns(conn, email_id)

        return row.body_html if row and row.body_html else None

    @async_log_call
    async def delete_email(self, email_id: str) -> bool:
        async with self._transaction("delete_email", multi_row=True, email_id=email_id) as conn:
            return await self.emails.delete(conn, email_id)

    @async_log_call
    async def move_email(self, email_id: str, from_mailbox_id: str, to_mailbox_id: str) -> bool:
        async with self._transaction("move_email", multi_row=True, email_id=email_id) as conn:
            return await self.emails.move(conn, email_id, from_mailbox_id, to_mailbox_id)

    async def update_email_flags(
        self,
        email_id: str,
        unread: Optional[bool] = None,
        flagged: Optional[bool] = None,
    ) -> bool:
        values = {}
        if unread is not None:
            values["is_unread"] = unread
        if flagged is not None:
            values["is_flagged"] = flagged
        if not values:
            return False

        async with self._transaction("update_email_flags", email_id=email_id) as conn:
            return await self.emails.set_columns(conn, email_id, **values)

    ## Pending actions

    @async_log_call
    async def add_pending_action(self, action) -> PendingAction:
        """Append an action (or action dict) to the queue.

        Raises:
            ValidationError: If the payload is not a valid action.
        """
        action = parse_action(action)

        async with self._transaction("add_pending_action", type=action.action_type.value) as conn:
            pending = await self.pending.add(conn, action)

        logger.info(f"Queued {pending.type.value} action #{pending.id}")
        return pending

    async def get_pending_actions(self) -> List[PendingAction]:
        """Queued actions in creation order."""
        async with self._transaction("get_pending_actions") as conn:
            return await self.pending.find_all(conn)

    async def remove_pending_action(
        self, action_id: int, drop_email_id: Optional[str] = None
    ) -> bool:
        """Remove a consumed action, optionally dropping its cached target.

        ``drop_email_id`` is deleted in the same transaction: a cached email
        row, or a local draft along with anything still queued for it.
        """
        async with self._transaction(
            "remove_pending_action",
            multi_row=drop_email_id is not None,
            action_id=action_id,
            email_id=drop_email_id,
        ) as conn:
            removed = await self.pending.delete(conn, action_id)

            if drop_email_id is not None:
                if is_local_id(drop_email_id):
                    await self._discard_local_draft(conn, drop_email_id)
                else:
                    await self.emails.delete(conn, drop_email_id)

        return removed

    async def count_pending_actions(self) -> int:
        async with self._transaction("count_pending_actions") as conn:
            return await self.pending.count(conn)

    ## Local drafts

    async def save_local_draft(self, draft: LocalDraft) -> LocalDraft:
        async with self._transaction("save_local_draft", draft_id=draft.id) as conn:
            return await self.drafts.save(conn, draft)

    async def get_local_drafts(self) -> List[LocalDraft]:
        """Local drafts, most recently updated first."""
        async with self._transaction("get_local_drafts") as conn:
            return await self.drafts.find_all(conn)

    async def get_local_draft(self, draft_id: str) -> Optional[LocalDraft]:
        async with self._transaction("get_local_draft", draft_id=draft_id) as conn:
            return await self.drafts.find_by_id(conn, draft_id)

    async def delete_local_draft(self, draft_id: str) -> bool:
        """Discard a local draft and every action still queued for it."""
        async with self._transaction(
            "delete_local_draft", multi_row=True, draft_id=draft_id
        ) as conn:
            return await self._discard_local_draft(conn, draft_id)

    async def _discard_local_draft(self, conn: AsyncConnection, draft_id: str) -> bool:
        deleted = await self.drafts.delete(conn, draft_id)
        dropped = await self.pending.delete_for_target(conn, draft_id)

        if dropped:
            logger.info(f"Dropped {dropped} pending actions for discarded draft {draft_id}")

        return deleted

    ## Offline writes and replay bookkeeping

    @async_log_call
    async def record_offline_mutation(self, action: MailAction) -> Optional[PendingAction]:
        """Apply an action's local effect and queue it, in one transaction.

        Compose actions without a remote draft id are held as a local draft
        and the queued action is retargeted to that draft's ``local-`` id.
        Deleting a local draft discards it (and its queued actions) without
        queueing anything, since the server never saw it.

        Returns:
            The queued entry, carrying the (possibly retargeted) action, or
            None when the action was fully resolved locally.
        """
        action = parse_action(action)

        async with self._transaction(
            "record_offline_mutation",
            multi_row=True,
            type=action.action_type.value,
            email_id=action.target_email_id,
        ) as conn:
            if action.action_type == ActionType.DELETE and is_local_id(action.email_id):
                await self._discard_local_draft(conn, action.email_id)
                pending = None
            else:
                action = await self._apply_local_effect(conn, action)
                pending = await self.pending.add(conn, action)

        if pending is None:
            logger.info(f"Discarded local draft {action.email_id}")
        else:
            logger.info(f"Recorded offline {pending.type.value} as pending #{pending.id}")
        return pending

    async def _apply_local_effect(self, conn: AsyncConnection, action: MailAction) -> MailAction:
        action_type = action.action_type

        if action_type == ActionType.DELETE:
            await self.emails.delete(conn, action.email_id)

        elif action_type == ActionType.MOVE:
            await self.emails.move(
                conn, action.email_id, action.from_mailbox_id, action.to_mailbox_id
            )

        elif action_type == ActionType.SET_FLAGS:
            values = {}
            if action.unread is not None:
                values["is_unread"] = action.unread
            if action.flagged is not None:
                values["is_flagged"] = action.flagged
            await self.emails.set_columns(conn, action.email_id, **values)

        elif action.draft_id and not is_local_id(action.draft_id):
            # Edit of a draft the server already knows about
            await self.emails.set_columns(
                conn,
                action.draft_id,
                from_addr=action.from_addr,
                to_addr=action.to_addr,
                subject=action.subject,
                body_text=action.body,
            )

        else:
            draft_id = action.draft_id or new_local_id()
            existing = await self.drafts.find_by_id(conn, draft_id)
            await self.drafts.save(
                conn,
                LocalDraft(
                    id=draft_id,
                    from_addr=action.from_addr,
                    to_addr=action.to_addr,
                    subject=action.subject,
                    body=action.body,
                    created_at=existing.created_at if existing else None,
                ),
            )
            action = action.retarget(draft_id)

        return action

    @async_log_call
    async def promote_local_draft(
        self,
        pending_id: Optional[int],
        local_id: Optional[str],
        remote_id: str,
        email: Optional[Email] = None,
    ) -> int:
        """Retire a draft id in favour of the id the server assigned.

        In one transaction: remove the consumed pending action, drop the
        local draft (or the superseded cached row), store ``email`` and
        retarget later pending actions from ``local_id`` to ``remote_id``.

        Returns:
            Number of pending actions retargeted.
        """
        async with self._transaction(
            "promote_local_draft",
            multi_row=True,
            local_id=local_id,
            remote_id=remote_id,
        ) as conn:
            if pending_id is not None:
                await self.pending.delete(conn, pending_id)

            retargeted = 0
            if local_id and local_id != remote_id:
                if is_local_id(local_id):
                    await self.drafts.delete(conn, local_id)
                else:
                    await self.emails.delete(conn, local_id)
                retargeted = await self.pending.retarget(conn, local_id, remote_id)

            if email is not None:
                await self.emails.save(conn, email)

        if retargeted:
            logger.info(f"Retargeted {retargeted} pending actions {local_id} -> {remote_id}")

        return retargeted

    ## Config

    async def get_config(self, key: str, default: Optional[str] = None) -> Optional[str]:
        async with self._transaction("get_config", key=key) as conn:
            value = await self.settings.get(conn, key)

        return default if value is None else value

    async def set_config(self, key: str, value: Optional[str]) -> None:
        async with self._transaction("set_config", key=key) as conn:
            await self.settings.set(conn, key, value)

    async def get_flag(self, key: str, default: bool = False) -> bool:
        value = await self.get_config(key)
        if value is None:
            return default
        return value.strip().lower() == "true"

    async def set_flag(self, key: str, value: bool) -> None:
        await self.set_config(key, "true" if value else "false")

