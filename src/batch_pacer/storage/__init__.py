"""Storage module for Batch Pacer.

This module provides:
- Database: explicit async engine and session factory
- ResponseCache: TTL response cache with quota eviction
- ProgressStore: resumable batch-session progress
"""

from batch_pacer.storage.cache import (
    ResponseCache,
    fingerprint,
    generate_cache_key,
    normalize_request,
)
from batch_pacer.storage.engine import Database
from batch_pacer.storage.models import Base, CacheEntry, SessionProgress
from batch_pacer.storage.progress import ProgressStore
from batch_pacer.storage.repositories import (
    BaseRepository,
    CacheEntryRepository,
    CacheStats,
    SessionProgressRepository,
)

__all__ = [
    # Models
    "Base",
    "CacheEntry",
    "SessionProgress",
    # Engine
    "Database",
    # Repositories
    "BaseRepository",
    "CacheEntryRepository",
    "CacheStats",
    "SessionProgressRepository",
    # Stores
    "ProgressStore",
    "ResponseCache",
    "fingerprint",
    "generate_cache_key",
    "normalize_request",
]
