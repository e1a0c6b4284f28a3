"""Rate-limited work scheduler with retry escalation.

This module provides the single-worker control loop that decides when each
pending work item may run. It coordinates the RateWindowTracker, the
PendingWorkList and the OutcomeStore, and reports lifecycle events through
a CallbackDispatcher.

Features:
- Rolling-window quota (N attempts per 60 seconds)
- Fixed spacing delay after every attempt
- Bounded retry with priority escalation
- Cooperative pause/resume; pause cancels a pending wait
"""

from __future__ import annotations

import asyncio
import threading
import time
from collections.abc import Awaitable, Callable, Hashable
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from batch_pacer.config import SchedulerConfig, get_settings
from batch_pacer.exceptions import DuplicateIdentityError
from batch_pacer.logging import LogContext, bind_item, get_logger

from .events import CallbackDispatcher, CompletionSummary, ErrorEvent, ProgressEvent
from .outcomes import FailureRecord, OutcomeStore, Success, TaskResult, run_task
from .queue import PendingWorkList, TaskFactory, WorkItem
from .window import RateWindowTracker

logger = get_logger(__name__)

Clock = Callable[[], float]
Sleep = Callable[[float], Awaitable[Any]]


class SchedulerState(StrEnum):
    """Lifecycle state of the scheduler."""

    IDLE = "idle"
    RUNNING = "running"


@dataclass(frozen=True)
class SchedulerStatus:
    """Point-in-time snapshot of the scheduler."""

    queued_count: int
    completed_count: int
    error_count: int
    is_running: bool
    can_proceed_now: bool
    current_wait_time: float


class Scheduler:
    """Single-worker scheduler that paces calls against a per-minute quota.

    Exactly one task is in flight at a time. Before each dequeue the loop
    checks the rate window; after each attempt it waits the spacing delay.
    Failed items are requeued with a priority boost until ``max_retries``
    failures, after which they are recorded as terminal errors.

    Usage:
        scheduler = Scheduler(
            SchedulerConfig(max_requests_per_minute=15),
            callbacks=CallbackDispatcher(on_complete=report),
        )
        scheduler.enqueue("row-1", lambda: client.complete(prompt_1))
        scheduler.enqueue("row-2", lambda: client.complete(prompt_2), priority=5)

        await scheduler.start()  # returns when drained or paused

    Thread safety:
        ``enqueue``, ``pause``, ``reset`` and ``get_status`` may be called from
        other threads. Internal structures are guarded by one lock that is
        never held across an await.
    """

    def __init__(
        self,
        config: SchedulerConfig | None = None,
        *,
        callbacks: CallbackDispatcher | None = None,
        clock: Clock = time.monotonic,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        """Initialize the scheduler.

        Args:
            config: Optional scheduler configuration (uses settings if not provided)
            callbacks: Dispatcher for progress/completion/error hooks
            clock: Monotonic clock in seconds
            sleep: Coroutine function used for rate-window and spacing waits
        """
        self._config = config or get_settings().scheduler
        self._callbacks = callbacks or CallbackDispatcher()
        self._clock = clock
        self._sleep = sleep

        self._window = RateWindowTracker(
            window_seconds=self._config.window_seconds,
            safety_buffer_seconds=self._config.safety_buffer_seconds,
        )
        self._pending = PendingWorkList()
        self._outcomes = OutcomeStore()
        self._retries: dict[Hashable, int] = {}
        self._lock = threading.RLock()

        # State
        self._state = SchedulerState.IDLE
        self._run_id = 0
        self._generation = 0
        self._in_flight: Hashable | None = None
        self._last_finished_at: float | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._wake: asyncio.Event | None = None
        self._previous_run: asyncio.Event | None = None

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------
    @property
    def config(self) -> SchedulerConfig:
        return self._config

    @property
    def callbacks(self) -> CallbackDispatcher:
        return self._callbacks

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def is_running(self) -> bool:
        """Whether the loop is actively dequeuing."""
        return self._state is SchedulerState.RUNNING

    @property
    def queue_size(self) -> int:
        """Number of pending work items."""
        return len(self._pending)

    @property
    def results(self) -> dict[Hashable, Any]:
        with self._lock:
            return self._outcomes.results

    @property
    def errors(self) -> dict[Hashable, FailureRecord]:
        with self._lock:
            return self._outcomes.errors

    def retry_count(self, identity: Hashable) -> int:
        """Number of failed attempts recorded for ``identity``."""
        with self._lock:
            return self._retries.get(identity, 0)

    def attempt_timestamps(self) -> list[float]:
        """Recorded attempt instants still held by the rate window."""
        with self._lock:
            return self._window.snapshot()

    # -------------------------------------------------------------------------
    # Submission
    # -------------------------------------------------------------------------
    def enqueue(self, identity: Hashable, task: TaskFactory, priority: int = 0) -> bool:
        """Add a work item.

        Re-submitting an identity that is pending, in flight, or already
        resolved is a no-op.

        Args:
            identity: Unique key for the work item
            task: Zero-argument coroutine function performing the call
            priority: Higher values run first (default 0)

        Returns:
            True if the item was queued, False if it was a duplicate
        """
        with self._lock:
            if self._outcomes.is_resolved(identity) or identity == self._in_flight:
                logger.debug("Work item {!r} already queued/processed, skipping", identity)
                return False
            item = WorkItem(
                identity=identity,
                task=task,
                priority=priority,
                enqueued_at=self._clock(),
            )
            try:
                self._pending.enqueue(item)
            except DuplicateIdentityError:
                logger.debug("Work item {!r} already queued/processed, skipping", identity)
                return False
            queued = len(self._pending)

        logger.debug("Added work item {!r} to queue ({} total)", identity, queued)
        return True

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------
    async def start(self) -> None:
        """Run the scheduling loop until the work list drains or the run is paused.

        Calling ``start()`` while already running logs a warning and returns.
        When the list drains the scheduler returns to IDLE and fires the
        completion callback. A paused or reset run does not.
        """
        with self._lock:
            if self._state is SchedulerState.RUNNING:
                logger.warning("Scheduler already running")
                return
            self._state = SchedulerState.RUNNING
            self._run_id += 1
            run_id = self._run_id
            generation = self._generation
            self._loop = asyncio.get_running_loop()
            self._wake = asyncio.Event()
            previous, done = self._previous_run, asyncio.Event()
            self._previous_run = done

        try:
            # A paused run may still be finishing its in-flight task
            if previous is not None:
                await previous.wait()

            with LogContext(run=run_id):
                logger.info("Starting queue processing with {} work items", len(self._pending))
                drained = await self._run(run_id, generation)
        finally:
            with self._lock:
                if self._run_id == run_id:
                    self._state = SchedulerState.IDLE
            done.set()

        if drained:
            summary = self.summary()
            logger.info(
                "Queue processing completed ({} succeeded, {} failed)",
                summary.total_processed,
                summary.total_errors,
            )
            self._callbacks.complete(summary)

    def pause(self) -> None:
        """Stop dequeuing after the current step.

        An in-flight task is not interrupted; a pending rate-window or
        spacing wait is cut short. ``start()`` resumes from the current list.
        """
        with self._lock:
            was_running = self._state is SchedulerState.RUNNING
            self._state = SchedulerState.IDLE
        if was_running:
            logger.info("Queue paused ({} pending)", len(self._pending))
        self._interrupt_wait()

    def reset(self) -> None:
        """Clear all pending work, outcomes, retry counts and attempt history.

        Safe to call while running: equivalent to pause plus a full clear.
        The outcome of a task in flight at reset time is discarded.
        """
        with self._lock:
            self._pending.clear()
            self._outcomes.clear()
            self._retries.clear()
            self._window.clear()
            self._last_finished_at = None
            self._state = SchedulerState.IDLE
            self._generation += 1
        self._interrupt_wait()
        logger.info("Queue cleared")

    # -------------------------------------------------------------------------
    # Query Methods
    # -------------------------------------------------------------------------
    def get_status(self) -> SchedulerStatus:
        """Get a point-in-time snapshot of the scheduler."""
        with self._lock:
            now = self._clock()
            limit = self._config.max_requests_per_minute
            return SchedulerStatus(
                queued_count=len(self._pending),
                completed_count=self._outcomes.completed_count,
                error_count=self._outcomes.error_count,
                is_running=self._state is SchedulerState.RUNNING,
                can_proceed_now=self._window.can_proceed(now, limit),
                current_wait_time=self._window.time_until_capacity(now, limit),
            )

    def summary(self) -> CompletionSummary:
        """Current results and terminal errors."""
        with self._lock:
            return CompletionSummary(
                results=self._outcomes.results,
                errors=self._outcomes.errors,
            )

    # -------------------------------------------------------------------------
    # Worker Loop
    # -------------------------------------------------------------------------
    async def _run(self, run_id: int, generation: int) -> bool:
        """Process the work list. Returns True if the list drained."""
        limit = self._config.max_requests_per_minute

        # A paused run may have skipped the spacing delay of its last attempt
        with self._lock:
            remaining = self._spacing_remaining(self._clock()) if self._pending else 0.0
        if remaining > 0:
            logger.debug("Resuming after {:.1f}s of remaining spacing delay", remaining)
            await self._suspend(remaining)

        while True:
            with self._lock:
                if not self._is_current(run_id):
                    return False
                if not self._pending:
                    return True

                now = self._clock()
                item: WorkItem | None = None
                wait = 0.0
                if self._window.can_proceed(now, limit):
                    item = self._pending.dequeue_highest()
                    self._window.record_attempt(now)
                    self._in_flight = item.identity
                else:
                    wait = self._window.time_until_capacity(now, limit)

            if item is None:
                logger.info("Rate limit reached, waiting {:.1f}s", wait)
                await self._suspend(wait)
                continue

            log = bind_item(item.identity)
            log.debug("Processing work item (priority={})", item.priority)
            started = self._clock()
            try:
                result = await run_task(item.task)
            finally:
                with self._lock:
                    self._in_flight = None
                    self._last_finished_at = self._clock()
            elapsed = self._clock() - started

            with self._lock:
                if self._generation != generation:
                    log.debug("Discarding outcome of work item cleared by reset")
                    return False
                notify = self._apply_result(item, result, elapsed)

            if notify is not None:
                notify()

            if self._is_current(run_id):
                await self._suspend(self._config.delay_between_requests_seconds)

    def _apply_result(
        self,
        item: WorkItem,
        result: TaskResult,
        elapsed: float,
    ) -> Callable[[], None] | None:
        """Record a task outcome. Caller holds the lock.

        Returns the callback notification to fire once the lock is released.
        """
        log = bind_item(item.identity)

        if isinstance(result, Success):
            self._outcomes.record_success(item.identity, result.value)
            log.info("Work item completed in {:.0f}ms", elapsed * 1000)
            completed = self._outcomes.completed_count
            progress = ProgressEvent(
                identity=item.identity,
                result=result.value,
                completed_count=completed,
                total_known=completed + len(self._pending),
                error_count=self._outcomes.error_count,
            )
            return lambda: self._callbacks.progress(progress)

        log.warning("Work item failed: {}", result.message)
        retries = self._retries.get(item.identity, 0)
        if retries < self._config.max_retries:
            self._retries[item.identity] = retries + 1
            self._pending.requeue_with_boost(item, self._config.retry_priority_boost)
            log.info(
                "Retrying work item (attempt {}/{}, priority={})",
                retries + 1,
                self._config.max_retries,
                item.priority,
            )
            return None

        self._outcomes.record_failure(item.identity, result.message, retries)
        log.error("Work item failed permanently after {} retries: {}", retries, result.message)
        error = ErrorEvent(
            identity=item.identity,
            error=result.message,
            attempts_exhausted=retries,
        )
        return lambda: self._callbacks.error(error)

    def _spacing_remaining(self, now: float) -> float:
        """Spacing delay still owed by the last finished attempt. Caller holds the lock."""
        if self._last_finished_at is None:
            return 0.0
        elapsed = now - self._last_finished_at
        return max(0.0, self._config.delay_between_requests_seconds - elapsed)

    def _is_current(self, run_id: int) -> bool:
        return self._state is SchedulerState.RUNNING and self._run_id == run_id

    async def _suspend(self, seconds: float) -> None:
        """Sleep for ``seconds`` unless pause/reset wakes the loop first."""
        wake = self._wake
        if seconds <= 0 or wake is None:
            await asyncio.sleep(0)
            return

        sleeper = asyncio.ensure_future(self._sleep(seconds))
        waker = asyncio.ensure_future(wake.wait())
        try:
            await asyncio.wait({sleeper, waker}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in (sleeper, waker):
                if not task.done():
                    task.cancel()

    def _interrupt_wait(self) -> None:
        """Wake a loop blocked in ``_suspend``, from any thread."""
        wake, loop = self._wake, self._loop
        if wake is None or loop is None or loop.is_closed():
            return
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is loop:
            wake.set()
        else:
            loop.call_soon_threadsafe(wake.set)
