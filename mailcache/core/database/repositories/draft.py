"""Local draft repository."""

from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncConnection

from mailcache.core.database.models import local_drafts
from mailcache.core.database.query import QueryBuilder
from mailcache.core.models import LocalDraft

from .base import Repository
from ..utils import row_to_local_draft, utc_now


class LocalDraftRepository(Repository[LocalDraft, str]):
    """Drafts composed offline, keyed by their ``local-`` id."""

    table = local_drafts

    async def save(self, conn: AsyncConnection, entity: LocalDraft) -> LocalDraft:
        """Upsert a draft, stamping timestamps.

        ``created_at`` is kept from the first save.
        """
        now = utc_now()
        entity.created_at = entity.created_at or now
        entity.updated_at = now

        values = {
            "id": entity.id,
            "from_addr": entity.from_addr,
            "to_addr": entity.to_addr,
            "subject": entity.subject,
            "body": entity.body,
            "created_at": entity.created_at,
            "updated_at": entity.updated_at,
        }
        update_columns = [k for k in values if k not in ("id", "created_at")]
        await conn.execute(
            QueryBuilder.upsert(local_drafts, values, update_columns=update_columns)
        )

        return entity

    async def find_all(self, conn: AsyncConnection) -> List[LocalDraft]:
        query = select(local_drafts).order_by(
            local_drafts.c.updated_at.desc(), local_drafts.c.id
        )
        result = await conn.execute(query)
        return [row_to_local_draft(row) for row in result]

    async def find_by_id(self, conn: AsyncConnection, id: str) -> Optional[LocalDraft]:
        result = await conn.execute(select(local_drafts).where(local_drafts.c.id == id))
        row = result.first()
        return row_to_local_draft(row) if row else None
