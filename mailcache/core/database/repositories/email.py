"""Email repository with SQLAlchemy Core queries."""

from typing import Dict, List, Optional

from sqlalchemy import delete, select, update
from sqlalchemy.dialects.sqlite import insert
from sqlalchemy.ext.asyncio import AsyncConnection

from mailcache.core.database.models import email_mailboxes, emails
from mailcache.core.database.query import QueryBuilder
from mailcache.core.models import Email

from .base import Repository
from ..utils import email_to_row, row_to_email, utc_now


class EmailRepository(Repository[Email, str]):
    """Repository for cached emails and their mailbox memberships.

    Membership rows are replaced, never merged: saving an email with a
    narrower ``mailbox_ids`` list drops the memberships it no longer names.
    """

    table = emails

    async def save(self, conn: AsyncConnection, entity: Email) -> None:
        """Upsert one email and replace its membership rows.

        Args:
            conn: Connection (inside the caller's transaction)
            entity: Email domain object to save
        """
        await conn.execute(QueryBuilder.upsert(emails, email_to_row(entity)))
        await self.replace_memberships(conn, entity.id, entity.mailbox_ids)

    async def replace_memberships(
        self, conn: AsyncConnection, email_id: str, mailbox_ids: List[str]
    ) -> None:
        await conn.execute(
            delete(email_mailboxes).where(email_mailboxes.c.email_id == email_id)
        )

        # dict.fromkeys keeps order and drops duplicates
        unique_ids = list(dict.fromkeys(mailbox_ids))
        if unique_ids:
            await conn.execute(
                insert(email_mailboxes),
                [{"email_id": email_id, "mailbox_id": m} for m in unique_ids],
            )

    async def find_by_mailbox(
        self, conn: AsyncConnection, mailbox_id: str, limit: int, offset: int = 0
    ) -> List[Email]:
        """Emails in a mailbox, newest first."""
        query = QueryBuilder.select_emails_in_mailbox(mailbox_id, limit=limit, offset=offset)
        result = await conn.execute(query)
        rows = result.fetchall()

        memberships = await self.mailbox_ids_for(conn, [row.id for row in rows])
        return [row_to_email(row, memberships.get(row.id, [])) for row in rows]

    async def find_by_id(self, conn: AsyncConnection, id: str) -> Optional[Email]:
        result = await conn.execute(select(emails).where(emails.c.id == id))
        row = result.first()
        if row is None:
            return None

        memberships = await self.mailbox_ids_for(conn, [id])
        return row_to_email(row, memberships.get(id, []))

    async def mailbox_ids_for(
        self, conn: AsyncConnection, email_ids: List[str]
    ) -> Dict[str, List[str]]:
        """Map each email id to its mailbox ids."""
        if not email_ids:
            return {}

        result = await conn.execute(QueryBuilder.select_memberships(email_ids))
        memberships: Dict[str, List[str]] = {}
        for email_id, mailbox_id in result:
            memberships.setdefault(email_id, []).append(mailbox_id)

        return memberships

    async def get_body_columns(self, conn: AsyncConnection, id: str):
        """Row of (body_text, body_html, preview), or None if not cached."""
        query = select(emails.c.body_text, emails.c.body_html, emails.c.preview).where(
            emails.c.id == id
        )
        result = await conn.execute(query)
        return result.first()

    async def set_columns(self, conn: AsyncConnection, id: str, **values) -> bool:
        """Update selected columns of one email.

        Returns:
            True if the email row exists.
        """
        values["updated_at"] = utc_now()
        result = await conn.execute(update(emails).where(emails.c.id == id).values(**values))
        return result.rowcount > 0

    async def delete(self, conn: AsyncConnection, id: str) -> bool:
        # Memberships cascade, but are removed explicitly too in case an
        # older database was created without the foreign key.
        await conn.execute(delete(email_mailboxes).where(email_mailboxes.c.email_id == id))
        return await super().delete(conn, id)

    async def move(
        self, conn: AsyncConnection, id: str, from_mailbox_id: str, to_mailbox_id: str
    ) -> bool:
        """Swap one membership for another. Returns False if the email is not cached."""
        if not await self.exists(conn, id):
            return False

        await conn.execute(
            delete(email_mailboxes).where(
                email_mailboxes.c.email_id == id,
                email_mailboxes.c.mailbox_id == from_mailbox_id,
            )
        )
        await conn.execute(
            insert(email_mailboxes)
            .values(email_id=id, mailbox_id=to_mailbox_id)
            .on_conflict_do_nothing()
        )
        await self.set_columns(conn, id)

        return True
