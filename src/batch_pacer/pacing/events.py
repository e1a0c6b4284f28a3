"""Lifecycle events and synchronous callback dispatch.

The scheduler emits three kinds of events:
- ProgressEvent after each successful item
- ErrorEvent when an item exhausts its retry budget
- CompletionSummary when the work list drains
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Hashable
from dataclasses import dataclass, field
from typing import Any

from .outcomes import FailureRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProgressEvent:
    """A work item completed successfully."""

    identity: Hashable
    result: Any
    completed_count: int
    total_known: int
    error_count: int

    @property
    def progress_percent(self) -> float:
        """Completion percentage (0-100) over items known so far."""
        if self.total_known == 0:
            return 100.0
        return (self.completed_count / self.total_known) * 100


@dataclass(frozen=True)
class ErrorEvent:
    """A work item failed terminally."""

    identity: Hashable
    error: str
    attempts_exhausted: int


@dataclass(frozen=True)
class CompletionSummary:
    """Final outcome of a drained run."""

    results: dict[Hashable, Any] = field(default_factory=dict)
    errors: dict[Hashable, FailureRecord] = field(default_factory=dict)

    @property
    def total_processed(self) -> int:
        """Number of successful items."""
        return len(self.results)

    @property
    def total_errors(self) -> int:
        """Number of terminally failed items."""
        return len(self.errors)

    @property
    def all_succeeded(self) -> bool:
        """Whether no item failed."""
        return not self.errors


ProgressCallback = Callable[[ProgressEvent], None]
CompleteCallback = Callable[[CompletionSummary], None]
ErrorCallback = Callable[[ErrorEvent], None]


class CallbackDispatcher:
    """Invokes caller-supplied hooks synchronously as events occur.

    A hook that raises is logged and skipped; it never interrupts the
    scheduler or the remaining hooks.

    Usage:
        dispatcher = CallbackDispatcher(on_complete=lambda s: print(s.total_processed))
        dispatcher.on_progress(lambda e: print(f"{e.progress_percent:.0f}%"))
    """

    def __init__(
        self,
        on_progress: ProgressCallback | None = None,
        on_complete: CompleteCallback | None = None,
        on_error: ErrorCallback | None = None,
    ) -> None:
        self._progress: list[ProgressCallback] = [on_progress] if on_progress else []
        self._complete: list[CompleteCallback] = [on_complete] if on_complete else []
        self._error: list[ErrorCallback] = [on_error] if on_error else []

    # -------------------------------------------------------------------------
    # Registration
    # -------------------------------------------------------------------------
    def on_progress(self, callback: ProgressCallback) -> None:
        """Register a progress callback."""
        self._progress.append(callback)

    def on_complete(self, callback: CompleteCallback) -> None:
        """Register a completion callback."""
        self._complete.append(callback)

    def on_error(self, callback: ErrorCallback) -> None:
        """Register a terminal-error callback."""
        self._error.append(callback)

    # -------------------------------------------------------------------------
    # Dispatch
    # -------------------------------------------------------------------------
    def progress(self, event: ProgressEvent) -> None:
        self._dispatch(self._progress, event, "progress")

    def complete(self, summary: CompletionSummary) -> None:
        self._dispatch(self._complete, summary, "completion")

    def error(self, event: ErrorEvent) -> None:
        self._dispatch(self._error, event, "error")

    def _dispatch(self, callbacks: list[Callable[[Any], None]], event: Any, kind: str) -> None:
        for callback in callbacks:
            try:
                callback(event)
            except Exception as e:
                logger.warning("%s callback error: %s", kind.capitalize(), e)
