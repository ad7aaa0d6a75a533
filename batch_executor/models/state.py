"""
Immutable state models for the batch executor

Every update produces a new RunState rather than mutating the existing one,
so anything reading `executor.state` always sees a complete snapshot:
- no torn reads between counters and results
- previous snapshots stay valid for comparison and debugging
"""
from __future__ import annotations
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Generic, List, Optional, Tuple, TypeVar
from enum import Enum

T = TypeVar("T")


class OperationStatus(str, Enum):
    """Batch run status"""

    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @property
    def is_active(self) -> bool:
        return self in (OperationStatus.RUNNING, OperationStatus.PAUSED)

    @property
    def is_terminal(self) -> bool:
        return self in (OperationStatus.COMPLETED, OperationStatus.CANCELLED)


class ItemStatus(str, Enum):
    """Terminal outcome of a single item"""

    SUCCESS = "success"
    FAILED = "failed"


@dataclass(frozen=True)
class ItemResult(Generic[T]):
    """
    Immutable outcome of processing one identifier

    Exactly one of `value`/`error` is meaningful, chosen by `status`.
    `attempts` counts every call made to the operation for this id,
    including rate-limit retries.
    """

    id: str
    status: ItemStatus
    value: Optional[T] = None
    error: Optional[BaseException] = None
    attempts: int = 1

    def __post_init__(self) -> None:
        if self.status == ItemStatus.SUCCESS and self.error is not None:
            raise ValueError(f"Successful result for {self.id!r} cannot carry an error")
        if self.status == ItemStatus.FAILED:
            if self.error is None:
                raise ValueError(f"Failed result for {self.id!r} requires an error")
            if self.value is not None:
                raise ValueError(f"Failed result for {self.id!r} cannot carry a value")

    @classmethod
    def success(cls, id: str, value: Optional[T] = None, attempts: int = 1) -> ItemResult[T]:
        return cls(id=id, status=ItemStatus.SUCCESS, value=value, attempts=attempts)

    @classmethod
    def failure(cls, id: str, error: BaseException, attempts: int = 1) -> ItemResult[T]:
        return cls(id=id, status=ItemStatus.FAILED, error=error, attempts=attempts)

    @property
    def succeeded(self) -> bool:
        return self.status == ItemStatus.SUCCESS

    @property
    def failed(self) -> bool:
        return self.status == ItemStatus.FAILED

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-friendly dictionary (the value is passed through as-is)"""
        data: Dict[str, Any] = {
            "id": self.id,
            "status": self.status.value,
            "attempts": self.attempts,
        }
        if self.succeeded:
            data["value"] = self.value
        else:
            data["error"] = str(self.error)
            data["error_type"] = type(self.error).__name__
        return data


def compute_progress(processed: int, total: int) -> int:
    """Percentage of processed items, rounded half up; 0 for an empty run"""
    if total <= 0:
        return 0
    # halves round up
    return int(processed * 100 / total + 0.5)


@dataclass(frozen=True)
class RunState(Generic[T]):
    """
    Complete immutable snapshot of the current or last run

    `processed`, `succeeded`, `failed`, `progress` and `failed_ids` are all
    derived from `results`, so they can never disagree with each other.
    """

    status: OperationStatus = OperationStatus.IDLE
    total: int = 0
    results: Tuple[ItemResult[T], ...] = field(default_factory=tuple)

    @classmethod
    def idle(cls) -> RunState[T]:
        """Zero state used at construction and after reset()"""
        return cls()

    @classmethod
    def started(cls, total: int) -> RunState[T]:
        """Fresh running state for a new run of `total` items"""
        return cls(status=OperationStatus.RUNNING, total=total)

    @property
    def processed(self) -> int:
        return len(self.results)

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.results if r.status == ItemStatus.SUCCESS)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if r.status == ItemStatus.FAILED)

    @property
    def progress(self) -> int:
        return compute_progress(self.processed, self.total)

    @property
    def failed_ids(self) -> List[str]:
        return [r.id for r in self.results if r.status == ItemStatus.FAILED]

    @property
    def remaining(self) -> int:
        return self.total - self.processed

    def with_result(self, result: ItemResult[T]) -> RunState[T]:
        """Create new RunState with one more terminal item result"""
        return replace(self, results=self.results + (result,))

    def with_status(self, status: OperationStatus) -> RunState[T]:
        """Create new RunState with a different status"""
        return replace(self, status=status)

    def to_dict(self) -> Dict[str, Any]:
        """Flat snapshot suitable for progress displays and JSON APIs"""
        return {
            "status": self.status.value,
            "total": self.total,
            "processed": self.processed,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "progress": self.progress,
            "failed_ids": self.failed_ids,
            "results": [r.to_dict() for r in self.results],
        }
