"""Data models for the batch executor"""

from batch_executor.models.state import (
    OperationStatus,
    ItemStatus,
    ItemResult,
    RunState,
    compute_progress,
)

__all__ = [
    "OperationStatus",
    "ItemStatus",
    "ItemResult",
    "RunState",
    "compute_progress",
]
