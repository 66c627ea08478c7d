"""Base repository interface."""

from abc import ABC
from typing import ClassVar, Generic, TypeVar

from sqlalchemy import Table, delete, exists, select
from sqlalchemy.ext.asyncio import AsyncConnection

T = TypeVar("T")
ID = TypeVar("ID")


class Repository(ABC, Generic[T, ID]):
    """Base repository over a single keyed table.

    Repositories hold no connection of their own: every method runs on the
    connection it is given, so several repositories can share one transaction.
    """

    table: ClassVar[Table]
    key_column: ClassVar[str] = "id"

    async def exists(self, conn: AsyncConnection, id: ID) -> bool:
        """Check if a row with this key exists.

        Args:
            conn: Connection to run on.
            id: The key to check.

        Returns:
            True if the row exists, False otherwise.
        """
        query = select(exists().where(self.table.c[self.key_column] == id))
        result = await conn.execute(query)
        return bool(result.scalar())

    async def delete(self, conn: AsyncConnection, id: ID) -> bool:
        """Delete a row by key.

        Returns:
            True if a row was removed.
        """
        result = await conn.execute(
            delete(self.table).where(self.table.c[self.key_column] == id)
        )
        return result.rowcount > 0
