"""Pending action (offline write queue) repository."""

import json
from typing import List

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncConnection

from mailcache.core.database.models import pending_actions
from mailcache.core.models import MailAction, PendingAction

from .base import Repository
from ..utils import row_to_pending_action, utc_now


class PendingActionRepository(Repository[PendingAction, int]):
    """FIFO queue of actions recorded while offline.

    Ordering is by the autoincrement id, which SQLite never reuses, so the
    queue keeps creation order even across removals.
    """

    table = pending_actions

    async def add(self, conn: AsyncConnection, action: MailAction) -> PendingAction:
        created_at = utc_now()
        result = await conn.execute(
            pending_actions.insert().values(
                type=action.action_type.value,
                email_id=action.target_email_id,
                data=json.dumps(action.payload()),
                created_at=created_at,
            )
        )
        return PendingAction(
            id=result.inserted_primary_key[0], action=action, created_at=created_at
        )

    async def find_all(self, conn: AsyncConnection) -> List[PendingAction]:
        result = await conn.execute(select(pending_actions).order_by(pending_actions.c.id))
        return [row_to_pending_action(row) for row in result]

    async def count(self, conn: AsyncConnection) -> int:
        result = await conn.execute(select(func.count()).select_from(pending_actions))
        return result.scalar() or 0

    async def delete_for_target(self, conn: AsyncConnection, email_id: str) -> int:
        """Drop every queued action aimed at ``email_id``."""
        result = await conn.execute(
            delete(pending_actions).where(pending_actions.c.email_id == email_id)
        )
        return result.rowcount

    async def retarget(self, conn: AsyncConnection, old_id: str, new_id: str) -> int:
        """Point every queued action targeting ``old_id`` at ``new_id``.

        Returns:
            Number of actions updated.
        """
        result = await conn.execute(
            update(pending_actions)
            .where(pending_actions.c.email_id == old_id)
            .values(email_id=new_id)
        )
        return result.rowcount
