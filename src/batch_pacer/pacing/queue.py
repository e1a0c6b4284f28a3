"""Pending work list ordered by priority.

Higher priority values run first. Items with equal priority run in the
order they arrived. Backed by a binary heap keyed on
``(-priority, sequence)`` so insert and remove are logarithmic.
"""

from __future__ import annotations

import heapq
import itertools
from collections.abc import Awaitable, Callable, Hashable, Iterator
from dataclasses import dataclass, field
from typing import Any

from batch_pacer.exceptions import DuplicateIdentityError, EmptyQueueError

TaskFactory = Callable[[], Awaitable[Any]]


@dataclass
class WorkItem:
    """A unit of work waiting to be executed.

    ``sequence`` is assigned by the work list on first insertion and is kept
    across retries, so a retried item stays ahead of equal-priority items
    that arrived after it.
    """

    identity: Hashable
    task: TaskFactory = field(repr=False)
    priority: int = 0
    enqueued_at: float = 0.0
    sequence: int = -1


class PendingWorkList:
    """Priority-ordered collection of not-yet-executed work items.

    Usage:
        work = PendingWorkList()
        work.enqueue(WorkItem("a", task_a, priority=0))
        work.enqueue(WorkItem("b", task_b, priority=5))

        item = work.dequeue_highest()  # "b"
    """

    def __init__(self) -> None:
        self._heap: list[tuple[int, int, WorkItem]] = []
        self._identities: set[Hashable] = set()
        self._sequence = itertools.count()

    def enqueue(self, item: WorkItem) -> None:
        """Add a new item.

        Raises:
            DuplicateIdentityError: If an item with the same identity is queued
        """
        if item.identity in self._identities:
            raise DuplicateIdentityError(item.identity)
        item.sequence = next(self._sequence)
        self._push(item)

    def dequeue_highest(self) -> WorkItem:
        """Remove and return the highest-priority, earliest-arrived item.

        Raises:
            EmptyQueueError: If the list is empty
        """
        if not self._heap:
            raise EmptyQueueError("Cannot dequeue from an empty work list")
        _, _, item = heapq.heappop(self._heap)
        self._identities.discard(item.identity)
        return item

    def requeue_with_boost(self, item: WorkItem, boost: int) -> None:
        """Re-insert a previously dequeued item with its priority raised by ``boost``."""
        if item.identity in self._identities:
            raise DuplicateIdentityError(item.identity)
        item.priority += boost
        if item.sequence < 0:
            item.sequence = next(self._sequence)
        self._push(item)

    def peek(self) -> WorkItem | None:
        """The item that would be dequeued next, without removing it."""
        return self._heap[0][2] if self._heap else None

    def identities(self) -> list[Hashable]:
        """Identities in dequeue order."""
        return [item.identity for item in self]

    def clear(self) -> None:
        """Drop every pending item."""
        self._heap.clear()
        self._identities.clear()

    def _push(self, item: WorkItem) -> None:
        heapq.heappush(self._heap, (-item.priority, item.sequence, item))
        self._identities.add(item.identity)

    def __contains__(self, identity: object) -> bool:
        return identity in self._identities

    def __len__(self) -> int:
        return len(self._heap)

    def __bool__(self) -> bool:
        return bool(self._heap)

    def __iter__(self) -> Iterator[WorkItem]:
        """Iterate items in dequeue order (does not consume)."""
        return (entry[2] for entry in sorted(self._heap))
