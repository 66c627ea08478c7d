"""Key/value runtime settings stored alongside the cache."""

from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncConnection

from mailcache.core.database.models import config
from mailcache.core.database.query import QueryBuilder

from .base import Repository


class SettingsRepository(Repository[str, str]):
    table = config
    key_column = "key"

    async def get(self, conn: AsyncConnection, key: str) -> Optional[str]:
        result = await conn.execute(select(config.c.value).where(config.c.key == key))
        row = result.first()
        return row.value if row else None

    async def set(self, conn: AsyncConnection, key: str, value: Optional[str]) -> None:
        await conn.execute(QueryBuilder.upsert(config, {"key": key, "value": value}))
