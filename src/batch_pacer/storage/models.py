"""SQLAlchemy ORM models for the response cache and progress store."""

from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, String, UniqueConstraint, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import JSON


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


# ------------------------------------------------------------------------------
# CacheEntry model
# ------------------------------------------------------------------------------
class CacheEntry(Base):
    """A cached response for one request key.

    ``written_at`` drives TTL expiry and oldest-first eviction.
    """

    __tablename__ = "cache_entries"

    id: Mapped[int] = mapped_column(primary_key=True)
    namespace: Mapped[str] = mapped_column(String(100), index=True)
    key: Mapped[str] = mapped_column(String(200))  # e.g., "prompt_1234567"

    response: Mapped[Any] = mapped_column(JSON)
    entry_metadata: Mapped[dict[str, Any]] = mapped_column("metadata", JSON, default=dict)
    size_bytes: Mapped[int] = mapped_column(default=0)

    written_at: Mapped[datetime] = mapped_column(DateTime, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=func.now())

    __table_args__ = (UniqueConstraint("namespace", "key", name="uq_cache_namespace_key"),)

    def __repr__(self) -> str:
        return f"<CacheEntry(id={self.id}, namespace='{self.namespace}', key='{self.key}')>"


# ------------------------------------------------------------------------------
# SessionProgress model
# ------------------------------------------------------------------------------
class SessionProgress(Base):
    """Saved progress of a batch session, used to resume interrupted work."""

    __tablename__ = "session_progress"

    id: Mapped[int] = mapped_column(primary_key=True)
    namespace: Mapped[str] = mapped_column(String(100), index=True)
    session_id: Mapped[str] = mapped_column(String(200))

    payload: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict)
    last_updated: Mapped[datetime] = mapped_column(DateTime)

    __table_args__ = (
        UniqueConstraint("namespace", "session_id", name="uq_progress_namespace_session"),
    )

    def __repr__(self) -> str:
        return f"<SessionProgress(id={self.id}, session_id='{self.session_id}')>"
