"""Unit tests for event records and CallbackDispatcher."""

import logging

import pytest

from batch_pacer.pacing.events import (
    CallbackDispatcher,
    CompletionSummary,
    ErrorEvent,
    ProgressEvent,
)
from batch_pacer.pacing.outcomes import FailureRecord


class TestEventRecords:
    """Tests for the event dataclasses."""

    def test_progress_percent(self) -> None:
        event = ProgressEvent(
            identity="a", result="ok", completed_count=3, total_known=4, error_count=0
        )
        assert event.progress_percent == 75.0

    def test_progress_percent_empty(self) -> None:
        event = ProgressEvent(
            identity="a", result="ok", completed_count=0, total_known=0, error_count=0
        )
        assert event.progress_percent == 100.0

    def test_completion_totals(self) -> None:
        summary = CompletionSummary(
            results={"a": 1, "b": 2},
            errors={"c": FailureRecord("boom", 3)},
        )

        assert summary.total_processed == 2
        assert summary.total_errors == 1
        assert summary.all_succeeded is False

    def test_events_are_frozen(self) -> None:
        event = ErrorEvent(identity="a", error="boom", attempts_exhausted=3)

        with pytest.raises(AttributeError):
            event.error = "other"  # type: ignore[misc]


class TestCallbackDispatcher:
    """Tests for hook registration and dispatch."""

    def test_constructor_hooks_are_called(self) -> None:
        progress: list[ProgressEvent] = []
        errors: list[ErrorEvent] = []
        completions: list[CompletionSummary] = []
        dispatcher = CallbackDispatcher(
            on_progress=progress.append,
            on_complete=completions.append,
            on_error=errors.append,
        )

        p = ProgressEvent("a", "ok", 1, 1, 0)
        e = ErrorEvent("b", "boom", 3)
        s = CompletionSummary()
        dispatcher.progress(p)
        dispatcher.error(e)
        dispatcher.complete(s)

        assert progress == [p]
        assert errors == [e]
        assert completions == [s]

    def test_registered_hooks_run_in_order(self) -> None:
        calls: list[str] = []
        dispatcher = CallbackDispatcher(on_progress=lambda e: calls.append("first"))
        dispatcher.on_progress(lambda e: calls.append("second"))

        dispatcher.progress(ProgressEvent("a", "ok", 1, 1, 0))

        assert calls == ["first", "second"]

    def test_no_hooks_is_noop(self) -> None:
        dispatcher = CallbackDispatcher()
        dispatcher.complete(CompletionSummary())

    def test_failing_hook_is_logged_and_skipped(self, caplog: pytest.LogCaptureFixture) -> None:
        """A raising hook does not stop the hooks after it."""
        calls: list[str] = []

        def broken(event: ErrorEvent) -> None:
            raise RuntimeError("hook exploded")

        dispatcher = CallbackDispatcher(on_error=broken)
        dispatcher.on_error(lambda e: calls.append("ran"))

        with caplog.at_level(logging.WARNING):
            dispatcher.error(ErrorEvent("a", "boom", 3))

        assert calls == ["ran"]
        assert "hook exploded" in caplog.text
