"""Sync coordinator: decides which source answers a read and how writes land."""

import asyncio
from typing import Any, Awaitable, Callable, List, Optional

from mailcache.core.database import LocalStore
from mailcache.core.models import (
    MailAction,
    Mailbox,
    MailboxRole,
    PendingAction,
    parse_action,
)
from mailcache.remote import RemoteAdapter, call_remote
from mailcache.utils.errors import (
    ConnectivityError,
    ErrorHandler,
    MailCacheError,
    NotFoundOffline,
    ValidationError,
)
from mailcache.utils.logging import get_logger

from .commands import LocalMirror, dispatch
from .constants import OFFLINE_MODE_KEY, PAGE_SIZE
from .replay import ReplayRunner
from .results import ConnectivityMode, EmailPage, MutationResult, ReplayReport, RequestTag

logger = get_logger(__name__)


class SyncCoordinator:
    """Routes presentation requests between the local store and the remote.

    Offline, reads are served from the store only and writes are applied
    locally and queued. Online, reads go to the remote and are written
    through to the store; writes go to the remote and are mirrored locally
    on success. A remote failure is always surfaced, never answered from
    cache.

    Mutations and replay share one lock, so at most one mutating remote
    call is in flight. Reads take no lock.
    """

    def __init__(
        self,
        store: LocalStore,
        remote: RemoteAdapter,
        mode: ConnectivityMode = ConnectivityMode.ONLINE,
    ):
        self.store = store
        self.remote = remote
        self._mode = mode

        self._mutation_lock = asyncio.Lock()
        self._mirror = LocalMirror(store)
        self._replayer = ReplayRunner(store, remote, self._mirror)

    @classmethod
    async def create(
        cls, store: LocalStore, remote: RemoteAdapter, default_offline: bool = False
    ) -> "SyncCoordinator":
        """Build a coordinator in the connectivity mode persisted in the store."""
        await store.initialise()
        offline = await store.get_flag(OFFLINE_MODE_KEY, default=default_offline)
        mode = ConnectivityMode.OFFLINE if offline else ConnectivityMode.ONLINE

        logger.info(f"Sync coordinator starting {mode.value}")
        return cls(store, remote, mode)

    @property
    def mode(self) -> ConnectivityMode:
        return self._mode

    @property
    def offline_mode(self) -> bool:
        return self._mode == ConnectivityMode.OFFLINE

    def _resolve(self, mode: Optional[ConnectivityMode]) -> ConnectivityMode:
        return mode or self._mode

    async def _write_through(
        self, what: str, func: Callable[..., Awaitable[Any]], *args: Any
    ) -> None:
        """Cache a remote read. Failures are logged, the read still succeeds."""
        try:
            await func(*args)
        except MailCacheError as e:
            logger.warning(f"Write-through of {what} failed: {e.message}")

    ## Read path

    async def load_mailboxes(self, mode: Optional[ConnectivityMode] = None) -> List[Mailbox]:
        """Mailbox list ordered by (sort_order, name) when offline.

        Raises:
            NotFoundOffline: Offline with no mailboxes cached.
            ConnectivityError: Online and the remote call failed.
        """
        if self._resolve(mode) == ConnectivityMode.OFFLINE:
            mailboxes = await self.store.get_mailboxes()
            if not mailboxes:
                raise NotFoundOffline("No mailboxes cached")
            return mailboxes

        mailboxes = await call_remote("fetch_mailboxes", self.remote.fetch_mailboxes)
        await self._write_through("mailboxes", self.store.save_mailboxes, mailboxes)
        return mailboxes

    async def load_emails(
        self,
        mailbox_id: str,
        offset: int = 0,
        mode: Optional[ConnectivityMode] = None,
        tag: Optional[RequestTag] = None,
    ) -> EmailPage:
        """One page of a mailbox.

        ``has_more`` is true exactly when the page holds ``PAGE_SIZE`` emails.

        Raises:
            NotFoundOffline: Offline and the mailbox is not cached.
            ConnectivityError: Online and the remote call failed.
        """
        mode = self._resolve(mode)

        if mode == ConnectivityMode.OFFLINE:
            if await self.store.get_mailbox(mailbox_id) is None:
                raise NotFoundOffline(
                    f"Mailbox {mailbox_id} not cached", details={"mailbox_id": mailbox_id}
                )
            emails = await self.store.get_emails(mailbox_id, offset=offset, limit=PAGE_SIZE)
        else:
            emails = await call_remote(
                "fetch_emails", self.remote.fetch_emails, mailbox_id, offset
            )
            await self._write_through("emails", self.store.save_emails, emails)

        return EmailPage(
            mailbox_id=mailbox_id,
            offset=offset,
            emails=emails,
            has_more=len(emails) == PAGE_SIZE,
            tag=tag,
            mode=mode,
        )

    async def refresh_emails(
        self,
        mailbox_id: str,
        mode: Optional[ConnectivityMode] = None,
        tag: Optional[RequestTag] = None,
    ) -> EmailPage:
        """Reload the first page of a mailbox."""
        return await self.load_emails(mailbox_id, offset=0, mode=mode, tag=tag)

    async def load_body(self, email_id: str, mode: Optional[ConnectivityMode] = None) -> str:
        """Body text of an email.

        Offline, an email cached without a body yields its marked preview, or
        a fixed placeholder when there is no preview either.

        Raises:
            NotFoundOffline: Offline and the email is not cached.
            ConnectivityError: Online and the remote call failed.
        """
        if self._resolve(mode) == ConnectivityMode.OFFLINE:
            body = await self.store.get_email_body(email_id)
            if body is None:
                raise NotFoundOffline(
                    f"Email {email_id} not cached", details={"email_id": email_id}
                )
            return body

        body = await call_remote("fetch_email_body", self.remote.fetch_email_body, email_id)
        await self._write_through("body", self.store.save_email_body, email_id, body)
        return body

    ## Write path

    async def mutate(self, action: Any, tag: Optional[RequestTag] = None) -> MutationResult:
        """Perform one mutating action and report a tagged result.

        Never raises for validation, connectivity or storage failures: they
        are reported on the result so the caller can revert its own
        optimistic state.
        """
        try:
            action = parse_action(action)
        except ValidationError as e:
            logger.info(f"Rejected invalid action: {e.message}")
            return MutationResult(action=action, ok=False, tag=tag, error=e)

        async with self._mutation_lock:
            if self.offline_mode:
                return await self._mutate_offline(action, tag)
            return await self._mutate_online(action, tag)

    async def _mutate_offline(self, action: MailAction, tag: Optional[RequestTag]) -> MutationResult:
        try:
            pending = await self.store.record_offline_mutation(action)
        except MailCacheError as e:
            ErrorHandler.handle(
                e, context=f"offline {action.action_type.value}", log_traceback=False
            )
            return MutationResult(action=action, ok=False, tag=tag, error=e)

        if pending is None:
            return MutationResult(action=action, ok=True, tag=tag, value=action.target_email_id)

        return MutationResult(
            action=action,
            ok=True,
            tag=tag,
            value=pending.action.target_email_id,
            queued=True,
        )

    async def _mutate_online(self, action: MailAction, tag: Optional[RequestTag]) -> MutationResult:
        try:
            remote_id = await dispatch(self.remote, action)
        except MailCacheError as e:
            ErrorHandler.handle(e, context=action.action_type.value, log_traceback=False)
            return MutationResult(action=action, ok=False, tag=tag, error=e)

        try:
            await self._mirror.apply(action, remote_id)
        except MailCacheError as e:
            # The server already has the change
            logger.warning(f"Local mirror of {action.action_type.value} failed: {e.message}")

        return MutationResult(action=action, ok=True, tag=tag, value=remote_id)

    async def archive(
        self, email_id: str, from_mailbox_id: str, tag: Optional[RequestTag] = None
    ) -> MutationResult:
        """Move an email to the cached archive-role mailbox."""
        archive = await self.store.get_mailbox_by_role(MailboxRole.ARCHIVE)
        if archive is None:
            error = ValidationError("No archive mailbox found")
            return MutationResult(
                action={"type": "move", "email_id": email_id, "from_mailbox_id": from_mailbox_id},
                ok=False,
                tag=tag,
                error=error,
            )

        return await self.mutate(
            {
                "type": "move",
                "email_id": email_id,
                "from_mailbox_id": from_mailbox_id,
                "to_mailbox_id": archive.id,
            },
            tag=tag,
        )

    async def queue_pending_action(self, action: Any) -> PendingAction:
        """Append an action to the queue without applying any local effect.

        Raises:
            ValidationError: If the action is invalid.
        """
        action = parse_action(action)

        async with self._mutation_lock:
            return await self.store.add_pending_action(action)

    ## Replay and connectivity

    async def replay_pending(self) -> ReplayReport:
        """Replay queued actions in order, stopping at the first failure.

        Raises:
            ConnectivityError: If called while offline.
        """
        if self.offline_mode:
            raise ConnectivityError("Cannot replay pending actions while offline")

        async with self._mutation_lock:
            return await self._replayer.run()

    async def go_online(self) -> ReplayReport:
        """Switch to online mode, persist it, and replay the queue."""
        self._mode = ConnectivityMode.ONLINE
        await self.store.set_flag(OFFLINE_MODE_KEY, False)
        logger.info("Switched to online mode")

        return await self.replay_pending()

    async def go_offline(self) -> None:
        self._mode = ConnectivityMode.OFFLINE
        await self.store.set_flag(OFFLINE_MODE_KEY, True)
        logger.info("Switched to offline mode")
