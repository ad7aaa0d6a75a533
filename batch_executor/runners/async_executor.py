"""
Async batch executor

Applies one async operation to a list of ids, one id at a time:
- pacing between items and between batches to stay under a rate limit
- bounded retry of rate-limited items
- cooperative pause/resume/cancel
- per-item results and progress through callbacks, events and `state`

One executor runs at most one batch at a time. A failing item never stops
the run; only cancel() does.

The executor imposes no timeout on the operation. An operation call that
never returns stalls the run, so operations must enforce their own timeouts.
"""
from __future__ import annotations
import asyncio
import logging
import uuid
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, Generic, Iterable, List, Optional, TypeVar

from batch_executor.core.aggregator import ProgressAggregator
from batch_executor.core.control import ControlPlane
from batch_executor.core.errors import describe_error
from batch_executor.core.events import EventBus, EventType, TERMINAL_EVENTS
from batch_executor.core.pacing import PacingController
from batch_executor.core.retry import RetryPolicy
from batch_executor.models.state import ItemResult, OperationStatus, RunState
from batch_executor.schemas.options import BatchOptions
from batch_executor.utils.logging_config import set_context, clear_context, clear_item_context

logger = logging.getLogger(__name__)

T = TypeVar("T")


class BatchExecutor(Generic[T]):
    """
    Sequential, rate-limit aware batch executor

    Key features:
    - At most one operation call in flight
    - Results in input order, exactly one per started id
    - Immutable RunState snapshots (no torn reads)
    - Pause/resume/cancel checked at suspension points only
    - Event streaming for progress displays
    """

    def __init__(
        self,
        operation: Callable[[str], Awaitable[T]],
        options: Optional[BatchOptions] = None,
        event_bus: Optional[EventBus] = None,
        sleep: Optional[Callable[[float], Awaitable[Any]]] = None,
        name: str = "batch_executor",
    ):
        """
        Initialize batch executor

        Args:
            operation: Async callable applied to each id
            options: Pacing, retry and callback options (defaults if omitted)
            event_bus: Bus for run/item events (a private one if omitted)
            sleep: Coroutine used for every delay (default: asyncio.sleep)
            name: Event source name
        """
        if not callable(operation):
            raise TypeError("operation must be an async callable taking an id")

        self.operation = operation
        self.options = options or BatchOptions()
        self.event_bus = event_bus or EventBus()
        self.name = name

        self.pacing = PacingController(
            batch_size=self.options.batch_size,
            delay_between_items=self.options.delay_between_items,
            delay_between_batches=self.options.delay_between_batches,
            sleep=sleep,
        )
        self.retry_policy = RetryPolicy(
            max_retries=self.options.max_retries,
            default_retry_delay=self.options.default_retry_delay,
            sleep=sleep,
        )
        self.aggregator = ProgressAggregator(
            on_complete=self.options.on_complete,
            on_progress=self.options.on_progress,
            on_item_complete=self.options.on_item_complete,
            event_bus=self.event_bus,
            source=name,
        )

        self._state: RunState[T] = RunState.idle()
        self._control = ControlPlane()
        self._run_id: Optional[str] = None
        self._task: Optional[asyncio.Task] = None

    # ------------------------------------------------------------------
    # State access
    # ------------------------------------------------------------------

    @property
    def state(self) -> RunState[T]:
        """Current snapshot; replaced as a whole on every update"""
        return self._state

    @property
    def status(self) -> OperationStatus:
        return self._state.status

    @property
    def run_id(self) -> Optional[str]:
        return self._run_id

    @property
    def results(self) -> List[ItemResult[T]]:
        return list(self._state.results)

    @property
    def failed_ids(self) -> List[str]:
        return self._state.failed_ids

    @property
    def is_idle(self) -> bool:
        return self._state.status == OperationStatus.IDLE

    @property
    def is_running(self) -> bool:
        return self._state.status == OperationStatus.RUNNING

    @property
    def is_paused(self) -> bool:
        return self._state.status == OperationStatus.PAUSED

    @property
    def is_completed(self) -> bool:
        return self._state.status == OperationStatus.COMPLETED

    @property
    def is_cancelled(self) -> bool:
        return self._state.status == OperationStatus.CANCELLED

    @property
    def has_errors(self) -> bool:
        return self._state.failed > 0

    # ------------------------------------------------------------------
    # Control
    # ------------------------------------------------------------------

    def start(self, ids: Iterable[str]) -> Optional[asyncio.Task]:
        """
        Start a run in the background and return immediately

        Must be called from inside a running event loop. Rejected (returns
        None, state untouched) when `ids` is empty or a run is already
        running or paused.

        Args:
            ids: Item identifiers, processed in order

        Returns:
            The task driving the run, or None if the start was rejected
        """
        ids = list(ids)
        if not ids:
            logger.warning("No ids provided, batch run not started")
            return None

        if self._state.status.is_active:
            logger.warning(
                f"Batch run {self._run_id} is already {self._state.status.value}; "
                f"ignoring start() with {len(ids)} ids"
            )
            return None

        loop = asyncio.get_running_loop()
        run_id = uuid.uuid4().hex[:12]
        control = ControlPlane()

        self._run_id = run_id
        self._control = control
        self._state = RunState.started(len(ids))
        self._task = loop.create_task(
            self._run(ids, control, run_id), name=f"batch-run-{run_id}"
        )
        return self._task

    def pause(self) -> bool:
        """Pause before the next item; no-op unless running"""
        if self._state.status != OperationStatus.RUNNING:
            logger.debug(f"pause() ignored while {self._state.status.value}")
            return False

        logger.info("Pausing batch run")
        self._control.pause()
        self._state = self._state.with_status(OperationStatus.PAUSED)
        return True

    def resume(self) -> bool:
        """Resume a paused run; no-op unless paused"""
        if self._state.status != OperationStatus.PAUSED:
            logger.debug(f"resume() ignored while {self._state.status.value}")
            return False

        logger.info("Resuming batch run")
        self._control.resume()
        self._state = self._state.with_status(OperationStatus.RUNNING)
        return True

    def cancel(self) -> bool:
        """
        Request cancellation of the active run

        The run becomes CANCELLED once the control loop reaches its next
        check; an operation call already in flight is allowed to finish.
        """
        if not self._state.status.is_active:
            logger.debug(f"cancel() ignored while {self._state.status.value}")
            return False

        logger.info("Cancellation requested")
        self._control.cancel()
        return True

    def reset(self) -> None:
        """
        Return to the idle zero state

        A run still in progress is cancelled and detached: it can no longer
        update this executor's state or fire its callbacks.
        """
        if self._state.status.is_active:
            logger.warning("reset() during an active run; cancelling and detaching it")
        self._control.cancel()

        self._control = ControlPlane()
        self._run_id = None
        self._task = None
        self._state = RunState.idle()

    async def wait(self) -> List[ItemResult[T]]:
        """
        Wait for the current run to finish

        Returns:
            Final results of the run, or the current results if none is active
        """
        task = self._task
        if task is None:
            return list(self._state.results)
        # shield: cancelling the waiter must not cancel the run
        return await asyncio.shield(task)

    async def run(self, ids: Iterable[str]) -> List[ItemResult[T]]:
        """
        Start a run and wait for it

        Returns:
            Final results, or [] if the start was rejected
        """
        task = self.start(ids)
        if task is None:
            return []
        return await self.wait()

    async def stream(self, ids: Iterable[str]) -> AsyncIterator[Dict[str, Any]]:
        """
        Start a run and yield its events as they happen

        Yields:
            Event dictionaries, ending with run_completed or run_cancelled
        """
        queue: asyncio.Queue = asyncio.Queue()

        async def stream_handler(event) -> None:
            await queue.put(event.to_dict())

        self.event_bus.on("*", stream_handler)
        try:
            task = self.start(ids)
            if task is None:
                return
            run_id = self._run_id

            while not (task.done() and queue.empty()):
                try:
                    event = await asyncio.wait_for(queue.get(), timeout=0.1)
                except asyncio.TimeoutError:
                    continue

                if event["correlation_id"] != run_id:
                    continue
                yield event
                if event["type"] in TERMINAL_EVENTS:
                    break
        finally:
            self.event_bus.off("*", stream_handler)

    # ------------------------------------------------------------------
    # Control loop
    # ------------------------------------------------------------------

    def _owns(self, run_id: str) -> bool:
        return self._run_id == run_id

    async def _emit(self, event_type: EventType, data: Dict[str, Any], run_id: str) -> None:
        if self._owns(run_id):
            await self.event_bus.emit(
                event_type.value, data=data, source=self.name, correlation_id=run_id
            )

    async def _checkpoint(self, control: ControlPlane, run_id: str) -> None:
        """Suspend here while paused"""
        if not control.is_paused or control.cancel_requested:
            return

        processed = self._state.processed
        await self._emit(EventType.RUN_PAUSED, {"processed": processed}, run_id)
        await control.wait_if_paused()
        if not control.cancel_requested:
            await self._emit(EventType.RUN_RESUMED, {"processed": processed}, run_id)

    async def _abort(self, run_id: str, error: BaseException) -> None:
        """Close out a run that died with an unexpected error as cancelled"""
        self._control.cancel()
        self._state = self.aggregator.finalize(self._state, cancelled=True)
        logger.error(
            f"Batch run aborted after {self._state.processed}/{self._state.total} items: "
            f"{describe_error(error)}"
        )
        try:
            await self.aggregator.run_finished(self._state, run_id)
        except Exception:
            logger.error("Failed to deliver completion of aborted run", exc_info=True)

    async def _run(self, ids: List[str], control: ControlPlane, run_id: str) -> List[ItemResult[T]]:
        set_context(run_id=run_id)
        total = len(ids)
        results: List[ItemResult[T]] = []

        async def on_retry(item_id: str, attempt: int, delay: float, error: BaseException) -> None:
            await self._emit(
                EventType.ITEM_RETRY_SCHEDULED,
                {"id": item_id, "attempt": attempt, "delay": delay, "error": str(error)},
                run_id,
            )

        try:
            total_batches = self.pacing.total_batches(total)
            logger.info(f"Starting batch run: {total} items in {total_batches} batches")
            await self._emit(
                EventType.RUN_STARTED,
                {"total": total, "total_batches": total_batches, "options": self.options.tunables()},
                run_id,
            )

            for batch in self.pacing.batches(ids):
                if control.cancel_requested:
                    break

                set_context(batch=batch.index)
                logger.debug(f"Batch {batch.index + 1}/{total_batches}: {len(batch.ids)} items")
                await self._emit(
                    EventType.BATCH_STARTED,
                    {"index": batch.index, "size": len(batch.ids), "total_batches": total_batches},
                    run_id,
                )

                for item_id in batch.ids:
                    await self._checkpoint(control, run_id)
                    if control.cancel_requested:
                        break

                    set_context(item_id=item_id)
                    await self._emit(EventType.ITEM_STARTED, {"id": item_id}, run_id)
                    result = await self.retry_policy.execute(
                        item_id,
                        self.operation,
                        on_retry=on_retry,
                        should_continue=lambda: self._owns(run_id),
                    )
                    clear_item_context()
                    results.append(result)

                    if not self._owns(run_id):
                        logger.info("Run was reset; stopping detached loop")
                        return results

                    self._state = self.aggregator.apply(self._state, result)
                    await self.aggregator.item_recorded(self._state, result, run_id)

                    await self.pacing.pause_between_items(len(results), total)

                if control.cancel_requested:
                    logger.info("Cancellation observed, skipping remaining batches")
                    break

                await self.pacing.pause_between_batches(batch, total)

            if not self._owns(run_id):
                return results

            self._state = self.aggregator.finalize(self._state, cancelled=control.cancel_requested)
            state = self._state
            if state.status == OperationStatus.CANCELLED:
                logger.info(f"Batch run cancelled after {state.processed}/{total} items")
            else:
                logger.info(
                    f"Batch run completed: {state.succeeded} succeeded, {state.failed} failed"
                )
            await self.aggregator.run_finished(state, run_id)
            return results

        except (Exception, asyncio.CancelledError) as e:
            if self._owns(run_id) and self._state.status.is_active:
                await self._abort(run_id, e)
            raise

        finally:
            clear_context()


async def run_batch(
    operation: Callable[[str], Awaitable[T]],
    ids: Iterable[str],
    options: Optional[BatchOptions] = None,
    **overrides: Any,
) -> List[ItemResult[T]]:
    """
    Convenience function to run one batch to completion

    Args:
        operation: Async callable applied to each id
        ids: Item identifiers
        options: Base options (defaults if omitted)
        **overrides: Option fields to replace, e.g. batch_size=5

    Returns:
        Final ordered results
    """
    if options is None:
        options = BatchOptions.create(**overrides)
    elif overrides:
        options = options.with_overrides(**overrides)

    executor = BatchExecutor(operation, options)
    return await executor.run(ids)
