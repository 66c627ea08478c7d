"""Mailbox repository."""

from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncConnection

from mailcache.core.database.models import mailboxes
from mailcache.core.database.query import QueryBuilder
from mailcache.core.models import Mailbox, MailboxRole

from .base import Repository
from ..utils import mailbox_to_row, row_to_mailbox


class MailboxRepository(Repository[Mailbox, str]):
    """Mirror of the remote mailbox list."""

    table = mailboxes

    async def save_batch(self, conn: AsyncConnection, entities: List[Mailbox]) -> int:
        """Upsert mailboxes by id.

        Returns:
            Number of mailboxes written.
        """
        for entity in entities:
            await conn.execute(QueryBuilder.upsert(mailboxes, mailbox_to_row(entity)))

        return len(entities)

    async def find_all(self, conn: AsyncConnection) -> List[Mailbox]:
        query = select(mailboxes).order_by(mailboxes.c.sort_order, mailboxes.c.name)
        result = await conn.execute(query)
        return [row_to_mailbox(row) for row in result]

    async def find_by_id(self, conn: AsyncConnection, id: str) -> Optional[Mailbox]:
        result = await conn.execute(select(mailboxes).where(mailboxes.c.id == id))
        row = result.first()
        return row_to_mailbox(row) if row else None

    async def find_by_role(
        self, conn: AsyncConnection, role: MailboxRole
    ) -> Optional[Mailbox]:
        """First mailbox holding a role, by sort order."""
        query = (
            select(mailboxes)
            .where(mailboxes.c.role == role.value)
            .order_by(mailboxes.c.sort_order, mailboxes.c.name)
            .limit(1)
        )
        result = await conn.execute(query)
        row = result.first()
        return row_to_mailbox(row) if row else None
