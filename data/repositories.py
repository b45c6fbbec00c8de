from __future__ import annotations

import time
from collections.abc import Callable
from datetime import datetime, timezone

from sqlalchemy import delete, or_, select
from sqlalchemy.dialects.sqlite import insert as sqlite_upsert
from sqlalchemy.ext.asyncio import AsyncSession

from data.schema import DBEntry


def _live(now: float):
    return or_(DBEntry.expires_at.is_(None), DBEntry.expires_at > now)


class EntryRepository:
    def __init__(self, session: AsyncSession, clock: Callable[[], float] = time.time) -> None:
        self._s = session
        self._clock = clock

    async def get(self, key: str) -> str | None:
        return await self._s.scalar(
            select(DBEntry.value).where(DBEntry.key == key, _live(self._clock()))
        )

    async def put(self, key: str, value: str, ttl_seconds: int | None = None) -> None:
        expires_at = self._clock() + ttl_seconds if ttl_seconds else None
        updated_at = datetime.now(timezone.utc)
        stmt = (
            sqlite_upsert(DBEntry)
            .values(key=key, value=value, expires_at=expires_at, updated_at=updated_at)
            .on_conflict_do_update(
                index_elements=["key"],
                set_={"value": value, "expires_at": expires_at, "updated_at": updated_at},
            )
        )
        await self._s.execute(stmt)

    async def delete(self, key: str) -> None:
        await self._s.execute(delete(DBEntry).where(DBEntry.key == key))

    async def keys(self, prefix: str) -> list[str]:
        q = (
            select(DBEntry.key)
            .where(DBEntry.key.startswith(prefix, autoescape=True), _live(self._clock()))
            .order_by(DBEntry.key)
        )
        result = await self._s.execute(q)
        return list(result.scalars().all())

    async def purge_expired(self) -> int:
        result = await self._s.execute(
            delete(DBEntry).where(DBEntry.expires_at.is_not(None), DBEntry.expires_at <= self._clock())
        )
        return result.rowcount or 0
