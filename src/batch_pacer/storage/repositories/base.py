"""Base repository pattern implementation for async SQLAlchemy.

Provides common session handling and namespace-scoped queries shared by
the cache-entry and session-progress repositories.
"""

from typing import Any, Generic, TypeVar

from sqlalchemy import Select, delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from batch_pacer.exceptions import StorageReadError
from batch_pacer.storage.models import Base

# Generic type variable for model classes
ModelT = TypeVar("ModelT", bound=Base)


class BaseRepository(Generic[ModelT]):
    """Base repository with common async session handling.

    Every model managed here carries a ``namespace`` column; all queries
    are scoped to the namespace the repository was created with.

    Usage:
        class CacheEntryRepository(BaseRepository[CacheEntry]):
            def __init__(self, session: AsyncSession, namespace: str) -> None:
                super().__init__(session, CacheEntry, namespace)
    """

    def __init__(
        self,
        session: AsyncSession,
        model_class: type[ModelT],
        namespace: str,
    ) -> None:
        """Initialize the repository with a session.

        Args:
            session: Async SQLAlchemy session (caller manages lifecycle)
            model_class: The SQLAlchemy model class this repository manages
            namespace: Partition the repository reads and writes
        """
        self._session = session
        self._model_class = model_class
        self._namespace = namespace

    @property
    def session(self) -> AsyncSession:
        """Access the underlying session."""
        return self._session

    @property
    def namespace(self) -> str:
        return self._namespace

    # -------------------------------------------------------------------------
    # Common Read Operations
    # -------------------------------------------------------------------------

    def _scoped(self) -> Select[tuple[ModelT]]:
        """SELECT of this model restricted to the namespace."""
        column: Any = getattr(self._model_class, "namespace")
        return select(self._model_class).where(column == self._namespace)

    async def _get_by_field(self, field_name: str, value: object) -> ModelT | None:
        """Get an entity by a specific field value within the namespace.

        Raises:
            StorageReadError: If the database cannot be read
        """
        stmt = self._scoped().where(getattr(self._model_class, field_name) == value)
        try:
            result = await self._session.execute(stmt)
        except SQLAlchemyError as e:
            raise StorageReadError(f"Failed to read {self._model_class.__name__}: {e}") from e
        return result.scalar_one_or_none()

    async def get_all(self, limit: int | None = None) -> list[ModelT]:
        """Get all entities in the namespace, optionally limited."""
        stmt = self._scoped()
        if limit is not None:
            stmt = stmt.limit(limit)
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def count(self) -> int:
        """Count entities in the namespace."""
        column: Any = getattr(self._model_class, "namespace")
        stmt = (
            select(func.count())
            .select_from(self._model_class)
            .where(column == self._namespace)
        )
        result = await self._session.execute(stmt)
        return result.scalar() or 0

    # -------------------------------------------------------------------------
    # Common Write Operations
    # -------------------------------------------------------------------------

    def add(self, entity: ModelT) -> ModelT:
        """Add an entity to the session (does not flush)."""
        self._session.add(entity)
        return entity

    async def flush(self) -> None:
        """Flush pending changes to the database."""
        await self._session.flush()

    async def delete(self, entity: ModelT) -> None:
        """Mark an entity for deletion."""
        await self._session.delete(entity)

    async def delete_all(self) -> int:
        """Delete every entity in the namespace.

        Returns:
            Number of deleted records
        """
        column: Any = getattr(self._model_class, "namespace")
        stmt = delete(self._model_class).where(column == self._namespace)
        cursor_result = await self._session.execute(stmt)
        # CursorResult has rowcount attribute for DELETE/UPDATE statements
        row_count: int = getattr(cursor_result, "rowcount", 0) or 0
        return row_count
