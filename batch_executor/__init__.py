"""
Batch Executor - rate-limit aware batched remote operations

Applies one async operation (delete, duplicate, create, ...) to a list of ids:
- Strictly sequential calls with pacing between items and batches
- Bounded retry of rate-limited calls
- Cooperative pause/resume/cancel
- Immutable progress snapshots, callbacks and event streaming

A failing item never aborts the batch.
"""

__version__ = "1.0.0"

# Core exports
from batch_executor.core.events import EventBus, Event, EventType
from batch_executor.core.errors import (
    BatchExecutorError,
    ErrorCategory,
    InvalidOptionsError,
    classify_error,
    is_rate_limit_error,
    get_retry_delay,
)

# Model exports
from batch_executor.models.state import (
    OperationStatus,
    ItemStatus,
    ItemResult,
    RunState,
)

# Schema exports
from batch_executor.schemas import BatchOptions, load_options

# Runner exports
from batch_executor.runners import BatchExecutor, run_batch

__all__ = [
    "__version__",
    # Events
    "EventBus",
    "Event",
    "EventType",
    # Errors
    "BatchExecutorError",
    "ErrorCategory",
    "InvalidOptionsError",
    "classify_error",
    "is_rate_limit_error",
    "get_retry_delay",
    # State models
    "OperationStatus",
    "ItemStatus",
    "ItemResult",
    "RunState",
    # Options
    "BatchOptions",
    "load_options",
    # Runners
    "BatchExecutor",
    "run_batch",
]
