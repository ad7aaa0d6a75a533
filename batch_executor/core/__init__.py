"""Core components of the batch executor control loop"""

from batch_executor.core.errors import (
    BatchExecutorError,
    ErrorCategory,
    InvalidOptionsError,
    classify_error,
    get_retry_delay,
    is_rate_limit_error,
)
from batch_executor.core.events import EventBus, Event, EventType
from batch_executor.core.control import ControlPlane
from batch_executor.core.retry import RetryPolicy
from batch_executor.core.pacing import Batch, PacingController
from batch_executor.core.aggregator import ProgressAggregator

__all__ = [
    "BatchExecutorError",
    "ErrorCategory",
    "InvalidOptionsError",
    "classify_error",
    "get_retry_delay",
    "is_rate_limit_error",
    "EventBus",
    "Event",
    "EventType",
    "ControlPlane",
    "RetryPolicy",
    "Batch",
    "PacingController",
    "ProgressAggregator",
]
