"""Batch Pacer exceptions."""

from collections.abc import Hashable


class BatchPacerError(Exception):
    """Base exception for Batch Pacer errors."""

    pass


class TaskError(BatchPacerError):
    """Raised by a task to report a failed external call.

    The scheduler retries the item until its retry budget is spent.
    Any other exception raised by a task is treated the same way.
    """

    pass


class EmptyQueueError(BatchPacerError):
    """Raised when dequeuing from an empty work list."""

    pass


class DuplicateIdentityError(BatchPacerError):
    """Raised when an identity is already pending in the work list."""

    def __init__(self, identity: Hashable) -> None:
        super().__init__(f"Work item {identity!r} is already queued")
        self.identity = identity


class StorageError(BatchPacerError):
    """Base class for cache and progress storage errors.

    Never propagated past the storage layer; callers see a cache miss.
    """

    pass


class StorageQuotaExceededError(StorageError):
    """Raised when a write would exceed the configured entry quota."""

    def __init__(self, message: str, limit: int) -> None:
        super().__init__(message)
        self.limit = limit


class StorageReadError(StorageError):
    """Raised when a stored entry cannot be read back."""

    pass
