"""Query builders using SQLAlchemy Core for type-safe queries."""

from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import Select, Table, select
from sqlalchemy.dialects.sqlite import Insert, insert

from mailcache.core.database.models import email_mailboxes, emails


class QueryBuilder:
    """Type-safe query builder using SQLAlchemy Core."""

    @staticmethod
    def upsert(
        table: Table,
        values: Dict[str, Any],
        index_elements: Optional[List[str]] = None,
        update_columns: Optional[Iterable[str]] = None,
    ) -> Insert:
        """Build INSERT ... ON CONFLICT DO UPDATE.

        Args:
            table: Target table
            values: Column values as dict
            index_elements: Conflict target (defaults to the primary key columns)
            update_columns: Columns refreshed on conflict (defaults to every
                non-key column present in ``values``)

        Returns:
            SQLAlchemy Insert statement
        """
        if index_elements is None:
            index_elements = [col.name for col in table.primary_key.columns]

        if update_columns is None:
            update_columns = [k for k in values if k not in index_elements]

        query = insert(table).values(**values)
        set_ = {col: query.excluded[col] for col in update_columns}

        if not set_:
            return query.on_conflict_do_nothing(index_elements=index_elements)

        return query.on_conflict_do_update(index_elements=index_elements, set_=set_)

    @staticmethod
    def select_emails_in_mailbox(
        mailbox_id: str,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> Select:
        """Build SELECT for one mailbox's emails, newest first.

        Args:
            mailbox_id: Mailbox whose members are listed
            limit: Maximum rows to return
            offset: Number of rows to skip

        Returns:
            SQLAlchemy Select statement
        """
        query = (
            select(emails)
            .join(email_mailboxes, email_mailboxes.c.email_id == emails.c.id)
            .where(email_mailboxes.c.mailbox_id == mailbox_id)
            # id breaks ties so pages never overlap
            .order_by(emails.c.date.desc(), emails.c.id.desc())
        )

        if limit is not None:
            query = query.limit(limit)
        if offset:
            query = query.offset(offset)

        return query

    @staticmethod
    def select_memberships(email_ids: List[str]) -> Select:
        """Build SELECT of (email_id, mailbox_id) pairs for the given emails."""
        return (
            select(email_mailboxes.c.email_id, email_mailboxes.c.mailbox_id)
            .where(email_mailboxes.c.email_id.in_(email_ids))
            .order_by(email_mailboxes.c.email_id, email_mailboxes.c.mailbox_id)
        )
