"""
Progress/result aggregator

Folds each terminal ItemResult into a new RunState snapshot and delivers the
matching notifications, in order:
    on_item_complete(result) -> item_completed event
    on_progress(processed, total) -> progress_updated event
and, once per run, on_complete(results) with the full ordered list.

Callbacks are plain synchronous callables. A callback that raises is logged
and skipped; it never stops the run. Async observers subscribe to the
EventBus instead.
"""
import logging
from typing import Any, Callable, Dict, List, Optional

from batch_executor.core.events import EventBus, EventType
from batch_executor.models.state import ItemResult, OperationStatus, RunState

logger = logging.getLogger(__name__)

OnComplete = Callable[[List[ItemResult]], Any]
OnProgress = Callable[[int, int], Any]
OnItemComplete = Callable[[ItemResult], Any]


class ProgressAggregator:
    """Builds RunState snapshots and notifies callbacks and event subscribers"""

    def __init__(
        self,
        on_complete: Optional[OnComplete] = None,
        on_progress: Optional[OnProgress] = None,
        on_item_complete: Optional[OnItemComplete] = None,
        event_bus: Optional[EventBus] = None,
        source: str = "batch_executor",
    ):
        self.on_complete = on_complete
        self.on_progress = on_progress
        self.on_item_complete = on_item_complete
        self.event_bus = event_bus
        self.source = source

    @staticmethod
    def apply(state: RunState, result: ItemResult) -> RunState:
        """Return the snapshot that follows `state` once `result` is recorded"""
        return state.with_result(result)

    @staticmethod
    def finalize(state: RunState, cancelled: bool) -> RunState:
        """Return the terminal snapshot for a finished run"""
        status = OperationStatus.CANCELLED if cancelled else OperationStatus.COMPLETED
        return state.with_status(status)

    async def item_recorded(self, state: RunState, result: ItemResult, run_id: str) -> None:
        """
        Notify about one new result

        Args:
            state: Snapshot that already includes `result`
            result: The single new item result
            run_id: Correlation id of the run
        """
        logger.debug(
            f"Recorded {result.id} as {result.status.value} ({state.processed}/{state.total})",
            extra={"progress": state.progress},
        )
        self._invoke("on_item_complete", self.on_item_complete, result)
        await self._emit(EventType.ITEM_COMPLETED, result.to_dict(), run_id)

        self._invoke("on_progress", self.on_progress, state.processed, state.total)
        await self._emit(
            EventType.PROGRESS_UPDATED,
            {
                "processed": state.processed,
                "total": state.total,
                "succeeded": state.succeeded,
                "failed": state.failed,
                "progress": state.progress,
            },
            run_id,
        )

    async def run_finished(self, state: RunState, run_id: str) -> None:
        """Deliver on_complete and the terminal event for a finished run"""
        self._invoke("on_complete", self.on_complete, list(state.results))

        event_type = (
            EventType.RUN_CANCELLED
            if state.status == OperationStatus.CANCELLED
            else EventType.RUN_COMPLETED
        )
        await self._emit(event_type, self.summarize(state), run_id)

    @staticmethod
    def summarize(state: RunState) -> Dict[str, Any]:
        """Counts for a finished (or in-progress) run"""
        return {
            "status": state.status.value,
            "total": state.total,
            "processed": state.processed,
            "succeeded": state.succeeded,
            "failed": state.failed,
            "progress": state.progress,
            "failed_ids": state.failed_ids,
        }

    async def _emit(self, event_type: EventType, data: Dict[str, Any], run_id: str) -> None:
        if self.event_bus is not None:
            await self.event_bus.emit(
                event_type.value, data=data, source=self.source, correlation_id=run_id
            )

    @staticmethod
    def _invoke(name: str, callback: Optional[Callable[..., Any]], *args: Any) -> None:
        if callback is None:
            return
        try:
            callback(*args)
        except Exception:
            logger.error(f"{name} callback raised", exc_info=True)
