"""Batch-session progress persistence.

Callers save an arbitrary JSON payload per session so an interrupted batch
can be resumed later. The scheduler itself never reads this store.
"""

from __future__ import annotations

from datetime import UTC
from typing import Any

from sqlalchemy.exc import SQLAlchemyError

from batch_pacer.config import CacheConfig, get_settings
from batch_pacer.exceptions import StorageError
from batch_pacer.logging import get_logger

from .cache import Now, to_naive_utc, utc_now
from .engine import Database
from .repositories import SessionProgressRepository

logger = get_logger(__name__)


class ProgressStore:
    """Save, load and clear progress payloads keyed by session ID.

    Usage:
        progress = ProgressStore(database)
        await progress.save_progress("plants.csv-1705312800", {"row": 42})

        saved = await progress.load_progress("plants.csv-1705312800")
        # {"row": 42, "last_updated": "2024-01-15T10:00:00+00:00"}
    """

    def __init__(
        self,
        database: Database,
        config: CacheConfig | None = None,
        *,
        now: Now = utc_now,
    ) -> None:
        self._database = database
        self._namespace = (config or get_settings().cache).namespace
        self._now = now

    async def save_progress(self, session_id: str, progress: dict[str, Any]) -> bool:
        """Store ``progress`` for a session, replacing any previous payload.

        Returns True if the payload was stored.
        """
        payload = {k: v for k, v in progress.items() if k != "last_updated"}
        try:
            async with self._database.session() as session:
                await SessionProgressRepository(session, self._namespace).save(
                    session_id,
                    payload,
                    last_updated=to_naive_utc(self._now()),
                )
        except SQLAlchemyError as e:
            logger.error("Error saving progress: {}", e)
            return False
        logger.debug("Saved progress for session: {}", session_id)
        return True

    async def load_progress(self, session_id: str) -> dict[str, Any] | None:
        """Load a session's payload plus its ``last_updated`` ISO timestamp."""
        try:
            async with self._database.session() as session:
                record = await SessionProgressRepository(
                    session, self._namespace
                ).get_by_session(session_id)
        except (StorageError, SQLAlchemyError) as e:
            logger.error("Error loading progress: {}", e)
            return None

        if record is None:
            return None

        logger.debug("Loaded progress for session: {}", session_id)
        return {
            **(record.payload or {}),
            "last_updated": record.last_updated.replace(tzinfo=UTC).isoformat(),
        }

    async def clear_progress(self, session_id: str) -> bool:
        """Delete a session's payload. Returns True if one was removed."""
        try:
            async with self._database.session() as session:
                removed = await SessionProgressRepository(
                    session, self._namespace
                ).delete_session(session_id)
        except SQLAlchemyError as e:
            logger.error("Error clearing progress: {}", e)
            return False
        if removed:
            logger.debug("Cleared progress for session: {}", session_id)
        return removed

    async def list_sessions(self) -> list[str]:
        """Session IDs with saved progress, most recently updated first."""
        try:
            async with self._database.session() as session:
                return await SessionProgressRepository(session, self._namespace).session_ids()
        except SQLAlchemyError as e:
            logger.error("Error listing progress sessions: {}", e)
            return []
