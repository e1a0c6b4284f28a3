"""Rate-limited scheduling of asynchronous work items.

Components:
- RateWindowTracker: Sliding 60-second attempt window
- PendingWorkList: Priority heap with arrival-order tie-break
- OutcomeStore: Results and terminal errors by identity
- Scheduler: Single-worker control loop with retry escalation
- CallbackDispatcher: Synchronous progress/completion/error hooks
"""

from .events import (
    CallbackDispatcher,
    CompleteCallback,
    CompletionSummary,
    ErrorCallback,
    ErrorEvent,
    ProgressCallback,
    ProgressEvent,
)
from .outcomes import Failure, FailureRecord, OutcomeStore, Success, TaskResult, run_task
from .queue import PendingWorkList, TaskFactory, WorkItem
from .scheduler import Scheduler, SchedulerState, SchedulerStatus
from .window import RateWindowTracker

__all__ = [
    # Events
    "CallbackDispatcher",
    "CompleteCallback",
    "CompletionSummary",
    "ErrorCallback",
    "ErrorEvent",
    "ProgressCallback",
    "ProgressEvent",
    # Outcomes
    "Failure",
    "FailureRecord",
    "OutcomeStore",
    "Success",
    "TaskResult",
    "run_task",
    # Work list
    "PendingWorkList",
    "TaskFactory",
    "WorkItem",
    # Scheduling
    "Scheduler",
    "SchedulerState",
    "SchedulerStatus",
    # Rate window
    "RateWindowTracker",
]
