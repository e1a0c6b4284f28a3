"""Repository pattern implementation for storage access.

This module provides repository classes that encapsulate all database
access logic for the response cache and progress store.
"""

from .base import BaseRepository
from .cache_entry import CacheEntryRepository, CacheStats
from .progress import SessionProgressRepository

__all__ = [
    "BaseRepository",
    "CacheEntryRepository",
    "CacheStats",
    "SessionProgressRepository",
]
