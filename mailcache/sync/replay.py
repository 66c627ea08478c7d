"""Replay of queued offline actions against the remote service."""

from collections import deque
from typing import Deque

from mailcache.core.database import LocalStore
from mailcache.core.models import COMPOSE_TYPES, ActionType, PendingAction, is_local_id
from mailcache.remote import RemoteAdapter
from mailcache.utils.errors import MailCacheError, RemoteNotFoundError, ReplayHaltError
from mailcache.utils.logging import get_logger, log_event

from .commands import LocalMirror, dispatch
from .results import ReplayOutcome, ReplayReport, ReplayStatus

logger = get_logger(__name__)


class ReplayRunner:
    """Re-issues pending actions in creation order, halting at the first failure.

    Actions that succeed are removed from the queue as they go, so a halted
    run keeps its earlier progress. The failing action and everything after
    it stay queued untouched. A compose action leaves the queue as soon as
    the server accepts it; filing the result locally is best-effort.

    A ``RemoteNotFoundError`` for delete, move or set_flags means the server
    already lost the target; the action is dropped as a successful no-op (a
    delete also drops the cached row). Compose actions have no such escape
    and halt like any other failure.
    """

    def __init__(self, store: LocalStore, remote: RemoteAdapter, mirror: LocalMirror):
        self.store = store
        self.remote = remote
        self.mirror = mirror

    async def run(self) -> ReplayReport:
        report = ReplayReport()
        queue: Deque[PendingAction] = deque(await self.store.get_pending_actions())

        if not queue:
            logger.debug("Replay: nothing queued")
            return report

        logger.info(f"Replaying {len(queue)} pending actions")

        while queue:
            pending = queue.popleft()

            try:
                outcome, requeue = await self._replay_one(pending)
            except MailCacheError as e:
                report.halt_error = ReplayHaltError(
                    f"Replay halted at {pending.type.value} #{pending.id}: {e}",
                    details={
                        "pending_id": pending.id,
                        "type": pending.type.value,
                        "email_id": pending.target_email_id,
                        "remaining": len(queue),
                    },
                    action=pending,
                    cause=e,
                )
                report.outcomes.append(ReplayOutcome(pending, ReplayStatus.FAILED, error=e))
                report.outcomes.extend(
                    ReplayOutcome(p, ReplayStatus.NOT_ATTEMPTED) for p in queue
                )
                logger.warning(report.halt_error.message)
                break

            report.outcomes.append(outcome)

            if requeue:
                # Later entries were retargeted or dropped
                queue = deque(
                    p for p in await self.store.get_pending_actions() if p.id > pending.id
                )

        log_event(
            "replay",
            "Replay finished",
            succeeded=len(report.succeeded),
            halted=report.halted,
            not_attempted=len(report.not_attempted),
        )
        return report

    async def _replay_one(self, pending: PendingAction):
        """Replay one action.

        Returns:
            The outcome, and whether the rest of the queue changed underneath.
        """
        action = pending.action

        if action.action_type in COMPOSE_TYPES:
            remote_id = await dispatch(self.remote, action)
            # Accepted by the server: the entry is consumed even if filing fails
            await self.store.remove_pending_action(pending.id)

            retargeted = 0
            try:
                retargeted = await self.mirror.promote(action, remote_id)
            except MailCacheError as e:
                logger.warning(
                    f"Replayed {pending.type.value} #{pending.id} as {remote_id}, "
                    f"but local filing failed: {e.message}"
                )

            logger.info(f"Replayed {pending.type.value} #{pending.id} as {remote_id}")
            outcome = ReplayOutcome(pending, ReplayStatus.SUCCEEDED, remote_id=remote_id)
            return outcome, retargeted > 0

        remote_missing = False
        try:
            await dispatch(self.remote, action)
        except RemoteNotFoundError:
            remote_missing = True
            logger.info(
                f"Replay: {action.target_email_id} gone on server, "
                f"dropping {pending.type.value} #{pending.id}"
            )

        drop_email_id = action.email_id if action.action_type == ActionType.DELETE else None
        await self.store.remove_pending_action(pending.id, drop_email_id=drop_email_id)

        outcome = ReplayOutcome(pending, ReplayStatus.SUCCEEDED, remote_missing=remote_missing)
        return outcome, drop_email_id is not None and is_local_id(drop_email_id)
