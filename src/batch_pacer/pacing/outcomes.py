"""Task results and the store of resolved work items.

A task outcome is an explicit value: ``Success`` or ``Failure``. The
scheduler branches on the kind instead of relying on exceptions unwinding
through the loop. ``run_task`` adapts tasks that return plain values or
raise to that contract.
"""

from __future__ import annotations

from collections.abc import Hashable
from dataclasses import dataclass
from typing import Any, TypeAlias

from .queue import TaskFactory


@dataclass(frozen=True)
class Success:
    """A task that produced a value."""

    value: Any


@dataclass(frozen=True)
class Failure:
    """A task that failed, with a human-readable message."""

    message: str
    error: BaseException | None = None


TaskResult: TypeAlias = Success | Failure


async def run_task(task: TaskFactory) -> TaskResult:
    """Invoke a task and normalize its outcome to a ``TaskResult``.

    Tasks may return a ``Success``/``Failure`` directly, return any other
    value (treated as success), or raise (treated as failure).
    """
    try:
        value = await task()
    except Exception as e:
        return Failure(message=str(e) or type(e).__name__, error=e)
    if isinstance(value, (Success, Failure)):
        return value
    return Success(value)


@dataclass(frozen=True)
class FailureRecord:
    """Terminal failure of a work item."""

    message: str
    retries: int


class OutcomeStore:
    """Completed results and terminal errors keyed by work-item identity.

    An identity lives in at most one of the two maps.
    """

    def __init__(self) -> None:
        self._results: dict[Hashable, Any] = {}
        self._errors: dict[Hashable, FailureRecord] = {}

    def record_success(self, identity: Hashable, value: Any) -> None:
        """Store a successful result."""
        self._errors.pop(identity, None)
        self._results[identity] = value

    def record_failure(self, identity: Hashable, message: str, retries: int) -> None:
        """Store a terminal failure."""
        self._results.pop(identity, None)
        self._errors[identity] = FailureRecord(message=message, retries=retries)

    def is_resolved(self, identity: Hashable) -> bool:
        """Whether the identity has a success or terminal failure recorded."""
        return identity in self._results or identity in self._errors

    def get_result(self, identity: Hashable, default: Any = None) -> Any:
        return self._results.get(identity, default)

    def get_error(self, identity: Hashable) -> FailureRecord | None:
        return self._errors.get(identity)

    @property
    def results(self) -> dict[Hashable, Any]:
        """Copy of the success map."""
        return dict(self._results)

    @property
    def errors(self) -> dict[Hashable, FailureRecord]:
        """Copy of the error map."""
        return dict(self._errors)

    @property
    def completed_count(self) -> int:
        return len(self._results)

    @property
    def error_count(self) -> int:
        return len(self._errors)

    def clear(self) -> None:
        self._results.clear()
        self._errors.clear()
