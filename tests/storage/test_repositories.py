"""Tests for the storage engine and repositories."""

from datetime import datetime, timedelta

import pytest
from sqlalchemy import inspect

from batch_pacer.exceptions import StorageQuotaExceededError
from batch_pacer.storage import (
    CacheEntry,
    CacheEntryRepository,
    Database,
    SessionProgressRepository,
)

BASE_TIME = datetime(2024, 1, 15, 10, 0, 0)


class TestDatabase:
    """Tests for the Database engine wrapper."""

    async def test_create_tables(self, database: Database) -> None:
        async with database.engine.connect() as conn:
            tables = await conn.run_sync(lambda sync_conn: inspect(sync_conn).get_table_names())

        assert "cache_entries" in tables
        assert "session_progress" in tables

    async def test_session_rolls_back_on_error(self, database: Database) -> None:
        with pytest.raises(RuntimeError):
            async with database.session() as session:
                repo = CacheEntryRepository(session, "test")
                await repo.upsert("k", "v", written_at=BASE_TIME)
                raise RuntimeError("abort")

        async with database.session() as session:
            assert await CacheEntryRepository(session, "test").count() == 0

    async def test_context_manager_creates_tables(self, tmp_path) -> None:
        url = f"sqlite+aiosqlite:///{tmp_path / 'pacer.db'}"

        async with Database(url) as db:
            async with db.session() as session:
                await CacheEntryRepository(session, "test").upsert(
                    "k", {"a": 1}, written_at=BASE_TIME
                )
            async with db.session() as session:
                entry = await CacheEntryRepository(session, "test").get_by_key("k")

        assert entry is not None
        assert entry.response == {"a": 1}


class TestCacheEntryRepository:
    """Tests for CacheEntryRepository."""

    async def test_upsert_inserts_then_updates(self, database: Database) -> None:
        async with database.session() as session:
            repo = CacheEntryRepository(session, "test")
            first = await repo.upsert("k", "v1", written_at=BASE_TIME, size_bytes=4)
            second = await repo.upsert(
                "k", "v2", written_at=BASE_TIME + timedelta(hours=1), metadata={"m": 1}
            )

            assert first.id == second.id
            assert await repo.count() == 1

        async with database.session() as session:
            entry = await CacheEntryRepository(session, "test").get_by_key("k")

        assert entry is not None
        assert entry.response == "v2"
        assert entry.entry_metadata == {"m": 1}
        assert entry.written_at == BASE_TIME + timedelta(hours=1)

    async def test_quota_on_insert(self, database: Database) -> None:
        async with database.session() as session:
            repo = CacheEntryRepository(session, "test")
            await repo.upsert("a", 1, written_at=BASE_TIME, max_entries=1)

            with pytest.raises(StorageQuotaExceededError) as exc_info:
                await repo.upsert("b", 2, written_at=BASE_TIME, max_entries=1)

            assert exc_info.value.limit == 1

    async def test_delete_written_before(self, database: Database) -> None:
        async with database.session() as session:
            repo = CacheEntryRepository(session, "test")
            await repo.upsert("old", 1, written_at=BASE_TIME)
            await repo.upsert("new", 2, written_at=BASE_TIME + timedelta(days=2))

            removed = await repo.delete_written_before(BASE_TIME + timedelta(days=1))

            assert removed == 1
            assert await repo.keys() == ["new"]

    async def test_evict_oldest(self, database: Database) -> None:
        async with database.session() as session:
            repo = CacheEntryRepository(session, "test")
            for offset, key in enumerate(["c", "a", "b"]):
                await repo.upsert(key, key, written_at=BASE_TIME + timedelta(minutes=offset))

            assert await repo.evict_oldest(2) == 2
            assert await repo.evict_oldest(0) == 0

        async with database.session() as session:
            assert await CacheEntryRepository(session, "test").keys() == ["b"]

    async def test_stats(self, database: Database) -> None:
        async with database.session() as session:
            repo = CacheEntryRepository(session, "test")
            await repo.upsert("a", 1, written_at=BASE_TIME, size_bytes=100)
            await repo.upsert("b", 2, written_at=BASE_TIME + timedelta(days=1), size_bytes=924)

            stats = await repo.get_stats()

        assert stats.count == 2
        assert stats.total_size_bytes == 1024
        assert stats.total_size_kb == 1.0
        assert stats.oldest == BASE_TIME
        assert stats.newest == BASE_TIME + timedelta(days=1)

    async def test_namespace_scoping(self, database: Database) -> None:
        async with database.session() as session:
            await CacheEntryRepository(session, "one").upsert("k", 1, written_at=BASE_TIME)
            await CacheEntryRepository(session, "two").upsert("k", 2, written_at=BASE_TIME)

        async with database.session() as session:
            one = CacheEntryRepository(session, "one")
            assert await one.delete_all() == 1

            two = CacheEntryRepository(session, "two")
            entries = await two.get_all()

        assert [e.response for e in entries] == [2]
        assert all(isinstance(e, CacheEntry) for e in entries)


class TestSessionProgressRepository:
    """Tests for SessionProgressRepository."""

    async def test_save_and_get(self, database: Database) -> None:
        async with database.session() as session:
            repo = SessionProgressRepository(session, "test")
            await repo.save("s", {"row": 1}, last_updated=BASE_TIME)
            await repo.save("s", {"row": 2}, last_updated=BASE_TIME + timedelta(seconds=5))

            record = await repo.get_by_session("s")

        assert record is not None
        assert record.payload == {"row": 2}
        assert record.last_updated == BASE_TIME + timedelta(seconds=5)

    async def test_delete_session(self, database: Database) -> None:
        async with database.session() as session:
            repo = SessionProgressRepository(session, "test")
            await repo.save("s", {}, last_updated=BASE_TIME)

            assert await repo.delete_session("s") is True
            assert await repo.delete_session("s") is False
            assert await repo.session_ids() == []
