"""Test fixtures for Batch Pacer."""

from .clock import FakeClock, FakeUtcClock
from .tasks import TaskRecorder

__all__ = [
    "FakeClock",
    "FakeUtcClock",
    "TaskRecorder",
]
