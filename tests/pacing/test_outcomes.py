"""Unit tests for task results and the OutcomeStore."""

from batch_pacer.exceptions import TaskError
from batch_pacer.pacing.outcomes import (
    Failure,
    FailureRecord,
    OutcomeStore,
    Success,
    run_task,
)


class TestRunTask:
    """Tests for run_task normalization."""

    async def test_plain_value_is_success(self) -> None:
        async def task() -> str:
            return "hello"

        assert await run_task(task) == Success("hello")

    async def test_none_is_success(self) -> None:
        async def task() -> None:
            return None

        assert await run_task(task) == Success(None)

    async def test_exception_is_failure(self) -> None:
        error = TaskError("quota exhausted")

        async def task() -> str:
            raise error

        result = await run_task(task)

        assert isinstance(result, Failure)
        assert result.message == "quota exhausted"
        assert result.error is error

    async def test_exception_without_message_uses_type_name(self) -> None:
        async def task() -> str:
            raise ValueError()

        result = await run_task(task)

        assert isinstance(result, Failure)
        assert result.message == "ValueError"

    async def test_explicit_results_pass_through(self) -> None:
        async def ok() -> Success:
            return Success(42)

        async def bad() -> Failure:
            return Failure("parse error")

        assert await run_task(ok) == Success(42)
        assert await run_task(bad) == Failure("parse error")


class TestOutcomeStore:
    """Tests for OutcomeStore."""

    def test_record_success(self) -> None:
        store = OutcomeStore()
        store.record_success("a", {"text": "ok"})

        assert store.is_resolved("a")
        assert store.get_result("a") == {"text": "ok"}
        assert store.completed_count == 1
        assert store.error_count == 0

    def test_record_failure(self) -> None:
        store = OutcomeStore()
        store.record_failure("a", "boom", retries=3)

        assert store.is_resolved("a")
        assert store.get_error("a") == FailureRecord(message="boom", retries=3)
        assert store.errors == {"a": FailureRecord("boom", 3)}

    def test_identity_in_one_map_only(self) -> None:
        """Recording one kind of outcome removes the other."""
        store = OutcomeStore()
        store.record_failure("a", "boom", retries=3)
        store.record_success("a", "ok")

        assert "a" in store.results
        assert "a" not in store.errors

    def test_maps_are_copies(self) -> None:
        store = OutcomeStore()
        store.record_success("a", 1)

        store.results["b"] = 2

        assert not store.is_resolved("b")

    def test_clear(self) -> None:
        store = OutcomeStore()
        store.record_success("a", 1)
        store.record_failure("b", "x", 0)

        store.clear()

        assert store.completed_count == 0
        assert store.error_count == 0
