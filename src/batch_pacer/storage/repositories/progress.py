"""Repository for SessionProgress model CRUD operations."""

from datetime import datetime
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from batch_pacer.storage.models import SessionProgress

from .base import BaseRepository


class SessionProgressRepository(BaseRepository[SessionProgress]):
    """Repository for saved batch-session progress."""

    def __init__(self, session: AsyncSession, namespace: str) -> None:
        super().__init__(session, SessionProgress, namespace)

    async def get_by_session(self, session_id: str) -> SessionProgress | None:
        """Get saved progress for a session.

        Raises:
            StorageReadError: If the database cannot be read
        """
        return await self._get_by_field("session_id", session_id)

    async def save(
        self,
        session_id: str,
        payload: dict[str, Any],
        *,
        last_updated: datetime,
    ) -> SessionProgress:
        """Create or replace the progress payload for a session."""
        existing = await self.get_by_session(session_id)
        if existing is not None:
            existing.payload = payload
            existing.last_updated = last_updated
            await self.flush()
            return existing

        record = SessionProgress(
            namespace=self._namespace,
            session_id=session_id,
            payload=payload,
            last_updated=last_updated,
        )
        self.add(record)
        await self.flush()
        return record

    async def session_ids(self) -> list[str]:
        """Session IDs in the namespace, most recently updated first."""
        stmt = (
            select(SessionProgress.session_id)
            .where(SessionProgress.namespace == self._namespace)
            .order_by(SessionProgress.last_updated.desc())
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def delete_session(self, session_id: str) -> bool:
        """Delete saved progress. Returns True if a record was removed."""
        stmt = delete(SessionProgress).where(
            SessionProgress.namespace == self._namespace,
            SessionProgress.session_id == session_id,
        )
        cursor_result = await self._session.execute(stmt)
        return bool(getattr(cursor_result, "rowcount", 0))
