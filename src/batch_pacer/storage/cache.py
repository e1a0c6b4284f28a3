"""Durable response cache.

Stores responses from the remote service so identical requests are not
sent twice and interrupted batches can pick up where they left off.

Behavior:
- Keys are derived from the normalized request text (see ``generate_cache_key``)
- Entries older than the TTL (30 days by default) read as absent and are evicted
- A write that hits the entry quota prunes expired, then oldest, entries and
  is retried exactly once
- Storage errors are logged and never raised to the caller
"""

from __future__ import annotations

import json
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import Any

from sqlalchemy.exc import SQLAlchemyError

from batch_pacer.config import CacheConfig, get_settings
from batch_pacer.exceptions import StorageError, StorageQuotaExceededError
from batch_pacer.logging import get_logger
from batch_pacer.pacing.outcomes import Failure, Success
from batch_pacer.pacing.queue import TaskFactory

from .engine import Database
from .repositories import CacheEntryRepository, CacheStats, SessionProgressRepository

logger = get_logger(__name__)

Now = Callable[[], datetime]

KEY_PREFIX = "prompt_"

_MISSING = object()


def normalize_request(text: str) -> str:
    """Case-fold and trim request text so equivalent requests share a key."""
    return text.lower().strip()


def fingerprint(text: str) -> int:
    """32-bit rolling hash (``h * 31 + unit``) over UTF-16 code units.

    The accumulator wraps as a signed 32-bit integer; the absolute value is
    returned.
    """
    data = text.encode("utf-16-le")
    h = 0
    for i in range(0, len(data), 2):
        unit = data[i] | (data[i + 1] << 8)
        h = (h * 31 + unit) & 0xFFFFFFFF
    if h >= 0x80000000:
        h -= 0x100000000
    return abs(h)


def generate_cache_key(prompt: str) -> str:
    """Derive the cache key for a request.

    Example:
        >>> generate_cache_key("  Hello ")
        'prompt_99162322'
    """
    return f"{KEY_PREFIX}{fingerprint(normalize_request(prompt))}"


def utc_now() -> datetime:
    return datetime.now(UTC)


def to_naive_utc(value: datetime) -> datetime:
    """Convert to the naive UTC datetimes SQLite stores."""
    if value.tzinfo is not None:
        value = value.astimezone(UTC).replace(tzinfo=None)
    return value


def _size_of(value: Any) -> int:
    return len(json.dumps(value, default=str).encode("utf-8"))


class ResponseCache:
    """TTL cache of remote-service responses backed by SQLite.

    Usage:
        database = Database("sqlite+aiosqlite:///./batch_pacer.db")
        await database.create_tables()
        cache = ResponseCache(database)

        key = generate_cache_key(prompt)
        response = await cache.get(key)
        if response is None:
            response = await client.complete(prompt)
            await cache.set(key, response, {"species": "Quercus robur"})

        # Or let the cache wrap a scheduler task
        scheduler.enqueue(row_id, cache.cached(key, lambda: client.complete(prompt)))
    """

    def __init__(
        self,
        database: Database,
        config: CacheConfig | None = None,
        *,
        now: Now = utc_now,
    ) -> None:
        """Initialize the cache.

        Args:
            database: Database holding the cache tables
            config: Optional cache configuration (uses settings if not provided)
            now: Clock returning the current UTC datetime
        """
        self._database = database
        self._config = config or get_settings().cache
        self._now = now

    @property
    def namespace(self) -> str:
        return self._config.namespace

    @property
    def ttl(self) -> timedelta:
        return self._config.ttl

    def generate_cache_key(self, prompt: str) -> str:
        return generate_cache_key(prompt)

    # -------------------------------------------------------------------------
    # Read / Write
    # -------------------------------------------------------------------------
    async def get(self, key: str) -> Any | None:
        """Get a cached response, or None if absent or expired.

        Expired entries are deleted as they are found. A stored ``None``
        reads the same as a miss; use ``cached()`` to tell them apart.
        """
        value = await self._lookup(key)
        return None if value is _MISSING else value

    async def _lookup(self, key: str) -> Any:
        """Cached response, or ``_MISSING`` if absent, expired or unreadable."""
        now = to_naive_utc(self._now())
        try:
            async with self._database.session() as session:
                repo = CacheEntryRepository(session, self.namespace)
                entry = await repo.get_by_key(key)
                if entry is None:
                    return _MISSING

                if now - entry.written_at > self.ttl:
                    logger.info("Cache expired for key: {}", key)
                    await repo.delete(entry)
                    return _MISSING

                logger.debug("Cache hit for key: {}", key)
                return entry.response
        except (StorageError, SQLAlchemyError) as e:
            logger.error("Error reading cache: {}", e)
            return _MISSING

    async def set(self, key: str, value: Any, metadata: dict[str, Any] | None = None) -> bool:
        """Store a response.

        On quota exhaustion, old entries are cleared and the write is
        retried once. Returns True if the response was stored.
        """
        try:
            await self._write(key, value, metadata)
        except StorageQuotaExceededError:
            logger.warning("Quota exceeded, clearing old cache...")
            await self._make_room()
            try:
                await self._write(key, value, metadata)
            except (StorageError, SQLAlchemyError) as retry_error:
                logger.error("Failed to cache even after cleanup: {}", retry_error)
                return False
        except (StorageError, SQLAlchemyError) as e:
            logger.error("Error writing cache: {}", e)
            return False

        logger.debug("Cached response for key: {}", key)
        return True

    async def delete(self, key: str) -> bool:
        """Delete a cached response. Returns True if one was removed."""
        try:
            async with self._database.session() as session:
                removed = await CacheEntryRepository(session, self.namespace).delete_key(key)
        except SQLAlchemyError as e:
            logger.error("Error deleting cache: {}", e)
            return False
        if removed:
            logger.debug("Deleted cache for key: {}", key)
        return removed

    def cached(self, key: str, task: TaskFactory) -> TaskFactory:
        """Wrap a task so a cache hit skips the call and a success is stored.

        Failures pass through untouched so the scheduler can retry them.
        """

        async def run() -> Any:
            hit = await self._lookup(key)
            if hit is not _MISSING:
                return hit

            outcome = await task()
            if isinstance(outcome, Failure):
                return outcome
            value = outcome.value if isinstance(outcome, Success) else outcome
            await self.set(key, value)
            return outcome

        return run

    # -------------------------------------------------------------------------
    # Maintenance
    # -------------------------------------------------------------------------
    async def keys(self) -> list[str]:
        """All cache keys, oldest write first. Empty if the cache cannot be read."""
        try:
            async with self._database.session() as session:
                return await CacheEntryRepository(session, self.namespace).keys()
        except SQLAlchemyError as e:
            logger.error("Error listing cache keys: {}", e)
            return []

    async def get_stats(self) -> CacheStats:
        """Entry count, total size and write-time range."""
        try:
            async with self._database.session() as session:
                return await CacheEntryRepository(session, self.namespace).get_stats()
        except SQLAlchemyError as e:
            logger.error("Error reading cache stats: {}", e)
            return CacheStats(count=0, total_size_bytes=0, oldest=None, newest=None)

    async def clear_old_cache(self, days: int | None = None) -> int:
        """Delete entries older than ``days`` (defaults to the TTL).

        Returns:
            Number of entries removed
        """
        max_age = timedelta(days=days) if days is not None else self.ttl
        cutoff = to_naive_utc(self._now()) - max_age
        try:
            async with self._database.session() as session:
                cleared = await CacheEntryRepository(
                    session, self.namespace
                ).delete_written_before(cutoff)
        except SQLAlchemyError as e:
            logger.error("Error clearing old cache: {}", e)
            return 0
        logger.info("Cleared {} old cache entries", cleared)
        return cleared

    async def clear_all(self) -> int:
        """Delete every cache entry and saved progress in the namespace.

        Returns:
            Number of cache entries removed
        """
        try:
            async with self._database.session() as session:
                cleared = await CacheEntryRepository(session, self.namespace).delete_all()
                await SessionProgressRepository(session, self.namespace).delete_all()
        except SQLAlchemyError as e:
            logger.error("Error clearing cache: {}", e)
            return 0
        logger.info("Cleared all cache ({} items)", cleared)
        return cleared

    async def export_cache(self) -> dict[str, dict[str, Any]]:
        """Dump all entries as JSON-serializable records keyed by cache key."""
        try:
            async with self._database.session() as session:
                entries = await CacheEntryRepository(session, self.namespace).get_all()
        except SQLAlchemyError as e:
            logger.error("Error exporting cache: {}", e)
            return {}
        return {
            entry.key: {
                "response": entry.response,
                "timestamp": entry.written_at.replace(tzinfo=UTC).isoformat(),
                "metadata": entry.entry_metadata or {},
            }
            for entry in entries
        }

    async def import_cache(self, data: dict[str, dict[str, Any]]) -> int:
        """Load records produced by ``export_cache``.

        Records that are not objects or cannot be stored are logged and skipped.

        Returns:
            Number of records imported
        """
        imported = 0
        for key, record in data.items():
            if not isinstance(record, dict):
                logger.error("Error importing cache item {}: expected an object", key)
                continue
            try:
                written_at = self._parse_timestamp(record.get("timestamp"))
                response = record["response"]
                async with self._database.session() as session:
                    await CacheEntryRepository(session, self.namespace).upsert(
                        key,
                        response,
                        written_at=written_at,
                        metadata=record.get("metadata") or {},
                        size_bytes=_size_of(response),
                    )
            except (KeyError, TypeError, ValueError, SQLAlchemyError) as e:
                logger.error("Error importing cache item {}: {}", key, e)
                continue
            imported += 1

        logger.info("Imported {} cache items", imported)
        return imported

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------
    async def _write(self, key: str, value: Any, metadata: dict[str, Any] | None) -> None:
        async with self._database.session() as session:
            await CacheEntryRepository(session, self.namespace).upsert(
                key,
                value,
                written_at=to_naive_utc(self._now()),
                metadata=metadata,
                size_bytes=_size_of(value),
                max_entries=self._config.max_entries,
            )

    async def _make_room(self) -> None:
        """Prune expired entries, then evict oldest until one slot is free."""
        await self.clear_old_cache()
        try:
            async with self._database.session() as session:
                repo = CacheEntryRepository(session, self.namespace)
                excess = await repo.count() - self._config.max_entries + 1
                if excess > 0:
                    evicted = await repo.evict_oldest(excess)
                    logger.info("Evicted {} oldest cache entries", evicted)
        except SQLAlchemyError as e:
            logger.error("Error evicting cache entries: {}", e)

    def _parse_timestamp(self, value: Any) -> datetime:
        if value is None:
            return to_naive_utc(self._now())
        if isinstance(value, (int, float)):
            # Millisecond epoch, as written by browser-side caches
            return to_naive_utc(datetime.fromtimestamp(value / 1000, tz=UTC))
        return to_naive_utc(datetime.fromisoformat(str(value)))
