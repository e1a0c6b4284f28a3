"""Repository for CacheEntry model CRUD operations."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from batch_pacer.exceptions import StorageQuotaExceededError
from batch_pacer.storage.models import CacheEntry

from .base import BaseRepository


@dataclass(frozen=True)
class CacheStats:
    """Aggregate figures for one cache namespace."""

    count: int
    total_size_bytes: int
    oldest: datetime | None
    newest: datetime | None

    @property
    def total_size_kb(self) -> float:
        return round(self.total_size_bytes / 1024, 2)


class CacheEntryRepository(BaseRepository[CacheEntry]):
    """Repository for cached responses.

    Manages the lifecycle of cache entries:
    - Lookup and upsert by key
    - Quota enforcement on insert
    - Expiry and oldest-first eviction
    """

    def __init__(self, session: AsyncSession, namespace: str) -> None:
        super().__init__(session, CacheEntry, namespace)

    # -------------------------------------------------------------------------
    # Query Methods
    # -------------------------------------------------------------------------

    async def get_by_key(self, key: str) -> CacheEntry | None:
        """Get an entry by cache key.

        Raises:
            StorageReadError: If the database cannot be read
        """
        return await self._get_by_field("key", key)

    async def keys(self) -> list[str]:
        """All cache keys in the namespace, oldest write first."""
        stmt = (
            select(CacheEntry.key)
            .where(CacheEntry.namespace == self._namespace)
            .order_by(CacheEntry.written_at, CacheEntry.id)
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def get_stats(self) -> CacheStats:
        """Count, total size and write-time range of the namespace."""
        stmt = select(
            func.count(CacheEntry.id),
            func.coalesce(func.sum(CacheEntry.size_bytes), 0),
            func.min(CacheEntry.written_at),
            func.max(CacheEntry.written_at),
        ).where(CacheEntry.namespace == self._namespace)
        result = await self._session.execute(stmt)
        count, total, oldest, newest = result.one()
        return CacheStats(
            count=count or 0,
            total_size_bytes=int(total or 0),
            oldest=oldest,
            newest=newest,
        )

    # -------------------------------------------------------------------------
    # Create/Update Methods
    # -------------------------------------------------------------------------

    async def upsert(
        self,
        key: str,
        response: Any,
        *,
        written_at: datetime,
        metadata: dict[str, Any] | None = None,
        size_bytes: int = 0,
        max_entries: int | None = None,
    ) -> CacheEntry:
        """Insert or overwrite the entry for ``key``.

        Overwriting an existing key never counts against the quota.

        Raises:
            StorageQuotaExceededError: If inserting would exceed ``max_entries``
        """
        existing = await self.get_by_key(key)
        if existing is not None:
            existing.response = response
            existing.entry_metadata = metadata or {}
            existing.size_bytes = size_bytes
            existing.written_at = written_at
            await self.flush()
            return existing

        if max_entries is not None and await self.count() >= max_entries:
            raise StorageQuotaExceededError(
                f"Cache namespace '{self._namespace}' is full ({max_entries} entries)",
                limit=max_entries,
            )

        entry = CacheEntry(
            namespace=self._namespace,
            key=key,
            response=response,
            entry_metadata=metadata or {},
            size_bytes=size_bytes,
            written_at=written_at,
        )
        self.add(entry)
        await self.flush()
        return entry

    # -------------------------------------------------------------------------
    # Delete Methods
    # -------------------------------------------------------------------------

    async def delete_key(self, key: str) -> bool:
        """Delete the entry for ``key``. Returns True if one was removed."""
        stmt = delete(CacheEntry).where(
            CacheEntry.namespace == self._namespace,
            CacheEntry.key == key,
        )
        cursor_result = await self._session.execute(stmt)
        return bool(getattr(cursor_result, "rowcount", 0))

    async def delete_written_before(self, cutoff: datetime) -> int:
        """Delete entries written before ``cutoff``.

        Returns:
            Number of deleted records
        """
        stmt = delete(CacheEntry).where(
            CacheEntry.namespace == self._namespace,
            CacheEntry.written_at < cutoff,
        )
        cursor_result = await self._session.execute(stmt)
        row_count: int = getattr(cursor_result, "rowcount", 0) or 0
        return row_count

    async def evict_oldest(self, count: int) -> int:
        """Delete the ``count`` least recently written entries.

        Returns:
            Number of deleted records
        """
        if count <= 0:
            return 0
        oldest = (
            select(CacheEntry.id)
            .where(CacheEntry.namespace == self._namespace)
            .order_by(CacheEntry.written_at, CacheEntry.id)
            .limit(count)
        )
        stmt = (
            delete(CacheEntry)
            .where(CacheEntry.id.in_(oldest))
            .execution_options(synchronize_session=False)
        )
        cursor_result = await self._session.execute(stmt)
        row_count: int = getattr(cursor_result, "rowcount", 0) or 0
        return row_count
