"""Tests for logging configuration."""

from __future__ import annotations

import logging
from collections.abc import Generator
from pathlib import Path

import pytest
from loguru import logger

from batch_pacer.logging import (
    LogContext,
    bind_item,
    get_logger,
    is_configured,
    reset_logging,
    setup_logging,
)


@pytest.fixture(autouse=True)
def _reset_logging_state() -> Generator[None, None, None]:
    reset_logging()
    yield
    reset_logging()


@pytest.fixture
def captured() -> Generator[list[str], None, None]:
    """Messages with their bound extras, captured from every level."""
    messages: list[str] = []
    handler_id = logger.add(
        lambda msg: messages.append(str(msg)), level="DEBUG", format="{extra} | {message}"
    )
    yield messages
    logger.remove(handler_id)


class TestLevels:
    """Tests for level selection in setup_logging."""

    def test_default_level_filters_debug(self, capsys: pytest.CaptureFixture[str]) -> None:
        setup_logging(level="INFO")

        get_logger("batch_pacer.storage.cache").debug("Cache hit for key: prompt_1")
        get_logger("batch_pacer.storage.cache").info("Cleared 3 old cache entries")

        err = capsys.readouterr().err
        assert "Cleared 3 old cache entries" in err
        assert "Cache hit" not in err

    def test_verbose_shows_debug(self, capsys: pytest.CaptureFixture[str]) -> None:
        setup_logging(level="WARNING", verbose=True)

        get_logger("batch_pacer.storage.cache").debug("Cache hit for key: prompt_1")

        assert "Cache hit for key: prompt_1" in capsys.readouterr().err

    def test_quiet_hides_info(self, capsys: pytest.CaptureFixture[str]) -> None:
        setup_logging(level="DEBUG", quiet=True)

        bind_item("row-1").info("Work item completed in 12ms")
        bind_item("row-2").warning("Work item failed: timeout")

        err = capsys.readouterr().err
        assert "Work item failed: timeout" in err
        assert "completed" not in err

    def test_verbose_wins_over_quiet(self, capsys: pytest.CaptureFixture[str]) -> None:
        setup_logging(level="INFO", verbose=True, quiet=True)

        bind_item("row-1").debug("Processing work item (priority=0)")

        assert "Processing work item" in capsys.readouterr().err

    def test_configured_flag(self) -> None:
        assert not is_configured()

        setup_logging()
        assert is_configured()

        reset_logging()
        assert not is_configured()


class TestConsoleFormat:
    """Tests for the context shown on console lines."""

    def test_item_and_run_context_on_console(self, capsys: pytest.CaptureFixture[str]) -> None:
        setup_logging(level="DEBUG")

        with LogContext(run=2):
            bind_item("row-42").info("Retrying work item")

        err = capsys.readouterr().err
        assert "batch_pacer.scheduler" in err
        assert "run=2" in err
        assert "item=row-42" in err

    def test_plain_module_line_has_no_context(self, capsys: pytest.CaptureFixture[str]) -> None:
        setup_logging(level="INFO")

        get_logger("batch_pacer.storage.progress").info("Saved progress")

        err = capsys.readouterr().err
        assert "batch_pacer.storage.progress" in err
        assert "item=" not in err
        assert "run=" not in err


class TestFileSink:
    """Tests for the rotating file sink."""

    def test_file_records_debug_with_context(self, tmp_path: Path) -> None:
        log_file = tmp_path / "pacer.log"
        setup_logging(level="WARNING", log_file=log_file)

        bind_item("row-7").debug("Retrying work item")
        logger.remove()  # flush and close the file sink

        content = log_file.read_text()
        assert "Retrying work item" in content
        assert "row-7" in content


class TestStdlibInterception:
    """Tests for routing stdlib loggers into loguru."""

    def test_pacing_events_logger_is_routed(self, capsys: pytest.CaptureFixture[str]) -> None:
        setup_logging(level="DEBUG")

        logging.getLogger("batch_pacer.pacing.events").warning("progress callback error: boom")

        err = capsys.readouterr().err
        assert "progress callback error: boom" in err
        assert "batch_pacer.pacing.events" in err

    @pytest.mark.parametrize(
        ("level", "expected"),
        [("INFO", logging.WARNING), ("DEBUG", logging.INFO)],
    )
    def test_sql_echo_only_when_debugging(self, level: str, expected: int) -> None:
        setup_logging(level=level)  # type: ignore[arg-type]

        assert logging.getLogger("sqlalchemy.engine").level == expected

    def test_aiosqlite_always_quieted(self) -> None:
        setup_logging(level="DEBUG")

        assert logging.getLogger("aiosqlite").level == logging.WARNING


class TestContextBinding:
    """Tests for get_logger, bind_item and LogContext."""

    def test_get_logger_binds_name(self, captured: list[str]) -> None:
        get_logger("batch_pacer.storage.cache").info("Cache expired for key: prompt_9")

        assert "'name': 'batch_pacer.storage.cache'" in captured[0]

    def test_bind_item_uses_string_identity(self, captured: list[str]) -> None:
        bind_item(("plants.csv", 42)).info("Work item completed")

        assert "('plants.csv', 42)" in captured[0]

    def test_log_context_is_scoped_to_block(self, captured: list[str]) -> None:
        with LogContext(session="plants.csv-1705312800"):
            logger.info("Inside context")
        logger.info("Outside context")

        assert "plants.csv-1705312800" in captured[0]
        assert "plants.csv-1705312800" not in captured[1]
