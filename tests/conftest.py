"""Pytest configuration and shared fixtures.

Usage Guide:
- For scheduler tests: use `fake_clock` + `make_scheduler` so waits are instant
- For storage tests: use `database` (fresh in-memory SQLite per test)
- For log assertions: use `log_messages` (captures loguru output)
"""

from collections.abc import AsyncGenerator, Callable, Generator
from typing import Any

import pytest
from loguru import logger

from batch_pacer.config import CacheConfig, SchedulerConfig
from batch_pacer.pacing import CallbackDispatcher, Scheduler
from batch_pacer.storage import Database
from tests.fixtures import FakeClock, FakeUtcClock, TaskRecorder


# -----------------------------------------------------------------------------
# Scheduler Fixtures
# -----------------------------------------------------------------------------
@pytest.fixture
def fake_clock() -> FakeClock:
    """Monotonic clock whose sleeps complete instantly."""
    return FakeClock()


@pytest.fixture
def recorder(fake_clock: FakeClock) -> TaskRecorder:
    """Task factory that logs invocations against the fake clock."""
    return TaskRecorder(clock=fake_clock)


@pytest.fixture
def make_scheduler(fake_clock: FakeClock) -> Callable[..., Scheduler]:
    """Build a scheduler on the fake clock.

    Defaults: generous quota and no spacing delay, so tests only pay for
    the timing they exercise.
    """

    def _make(
        callbacks: CallbackDispatcher | None = None,
        **config: Any,
    ) -> Scheduler:
        config.setdefault("max_requests_per_minute", 1_000)
        config.setdefault("delay_between_requests_ms", 0)
        return Scheduler(
            SchedulerConfig(**config),
            callbacks=callbacks,
            clock=fake_clock,
            sleep=fake_clock.sleep,
        )

    return _make


# -----------------------------------------------------------------------------
# Storage Fixtures
# -----------------------------------------------------------------------------
@pytest.fixture
async def database() -> AsyncGenerator[Database, None]:
    """Create an in-memory SQLite database for tests.

    Each test gets a fresh database with all tables created.
    """
    db = Database("sqlite+aiosqlite:///:memory:")
    await db.create_tables()
    yield db
    await db.dispose()


@pytest.fixture
def utc_clock() -> FakeUtcClock:
    """Adjustable wall clock for TTL tests."""
    return FakeUtcClock()


@pytest.fixture
def cache_config() -> CacheConfig:
    return CacheConfig(namespace="test", ttl_days=30, max_entries=100)


# -----------------------------------------------------------------------------
# Logging Fixtures
# -----------------------------------------------------------------------------
@pytest.fixture
def log_messages() -> Generator[list[str], None, None]:
    """Capture loguru messages emitted during the test."""
    messages: list[str] = []
    handler_id = logger.add(lambda msg: messages.append(str(msg)), level="DEBUG")
    yield messages
    logger.remove(handler_id)
