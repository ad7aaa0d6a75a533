"""
Event system for the batch executor

Events are the observer form of the executor's callbacks:
- progress displays can subscribe instead of passing callbacks
- `BatchExecutor.stream()` drains them as a channel
- tests can assert on the exact order of what happened
"""
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Coroutine, Dict, List, Optional, Union
from enum import Enum
import asyncio
import inspect
import logging

logger = logging.getLogger(__name__)


class EventType(str, Enum):
    """Event types emitted during a batch run"""

    # Run lifecycle
    RUN_STARTED = "run_started"
    RUN_PAUSED = "run_paused"
    RUN_RESUMED = "run_resumed"
    RUN_COMPLETED = "run_completed"
    RUN_CANCELLED = "run_cancelled"

    # Pacing
    BATCH_STARTED = "batch_started"

    # Item lifecycle
    ITEM_STARTED = "item_started"
    ITEM_RETRY_SCHEDULED = "item_retry_scheduled"
    ITEM_COMPLETED = "item_completed"

    # Aggregates
    PROGRESS_UPDATED = "progress_updated"


TERMINAL_EVENTS = frozenset({EventType.RUN_COMPLETED.value, EventType.RUN_CANCELLED.value})


@dataclass(frozen=True)
class Event:
    """Immutable event object"""

    type: str
    data: Dict[str, Any] = field(default_factory=dict)
    timestamp: float = field(default_factory=time.time)
    source: Optional[str] = None
    correlation_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Serialize for streaming consumers"""
        return {
            "type": self.type,
            "data": self.data,
            "timestamp": self.timestamp,
            "source": self.source,
            "correlation_id": self.correlation_id,
        }

    def __str__(self) -> str:
        return f"Event({self.type}, source={self.source}, data_keys={list(self.data.keys())})"


EventHandler = Callable[[Event], Union[Coroutine[Any, Any, None], None]]


async def _dispatch(handler: EventHandler, event: Event) -> None:
    result = handler(event)
    if inspect.isawaitable(result):
        await result


class EventBus:
    """
    Publish-subscribe bus with async (or plain) handlers

    Features:
    - Multiple handlers per event type, plus "*" wildcard handlers
    - Error isolation (one handler failure doesn't break others or the run)
    - Handler removal support
    - Optional bounded event history
    """

    def __init__(self, keep_history: bool = False, max_history: int = 1000):
        """
        Initialize event bus

        Args:
            keep_history: Whether to store event history
            max_history: Maximum number of events to keep in history
        """
        self.handlers: Dict[str, List[EventHandler]] = {}
        self.keep_history = keep_history
        self.max_history = max_history
        self.history: List[Event] = []
        self._handler_errors: List[tuple[Event, Exception]] = []

    def on(self, event_type: str, handler: EventHandler) -> None:
        """
        Register an event handler

        Args:
            event_type: The event type to listen for, or "*" for all
            handler: Function taking the Event; awaited if it returns an awaitable
        """
        event_type = _type_key(event_type)
        self.handlers.setdefault(event_type, []).append(handler)
        logger.debug(f"Registered handler for {event_type}")

    def off(self, event_type: str, handler: EventHandler) -> None:
        """
        Unregister an event handler

        Args:
            event_type: The event type
            handler: The handler to remove
        """
        event_type = _type_key(event_type)
        if event_type in self.handlers:
            try:
                self.handlers[event_type].remove(handler)
                logger.debug(f"Unregistered handler for {event_type}")
            except ValueError:
                logger.warning(f"Handler not found for {event_type}")

    async def emit(
        self,
        event_type: str,
        data: Optional[Dict[str, Any]] = None,
        source: Optional[str] = None,
        correlation_id: Optional[str] = None,
    ) -> Event:
        """
        Emit an event to all registered handlers

        Handlers for one event run concurrently; emit returns once all of
        them have finished, so events reach handlers in emission order.

        Args:
            event_type: The type of event
            data: Event data dictionary
            source: Source component that emitted the event
            correlation_id: ID to correlate related events (the run id)

        Returns:
            The emitted Event object
        """
        event = Event(
            type=_type_key(event_type),
            data=data or {},
            timestamp=time.time(),
            source=source,
            correlation_id=correlation_id,
        )

        if self.keep_history:
            self.history.append(event)
            if len(self.history) > self.max_history:
                self.history = self.history[-self.max_history :]

        handlers = list(self.handlers.get(event.type, [])) + list(self.handlers.get("*", []))

        if not handlers:
            return event

        results = await asyncio.gather(
            *[_dispatch(handler, event) for handler in handlers],
            return_exceptions=True,
        )

        for i, result in enumerate(results):
            if isinstance(result, Exception):
                logger.error(
                    f"Handler {i} for {event.type} failed: {result}", exc_info=result
                )
                self._handler_errors.append((event, result))

        return event

    def clear_handlers(self, event_type: Optional[str] = None) -> None:
        """
        Clear event handlers

        Args:
            event_type: If specified, clear only handlers for this type.
                       If None, clear all handlers.
        """
        if event_type is None:
            self.handlers.clear()
            logger.info("Cleared all event handlers")
        else:
            event_type = _type_key(event_type)
            if event_type in self.handlers:
                del self.handlers[event_type]
                logger.info(f"Cleared handlers for {event_type}")

    def get_history(self, event_type: Optional[str] = None) -> List[Event]:
        """
        Get event history

        Args:
            event_type: If specified, filter by this event type

        Returns:
            List of events
        """
        if not self.keep_history:
            logger.warning("Event history is disabled")
            return []

        if event_type is None:
            return self.history.copy()
        event_type = _type_key(event_type)
        return [e for e in self.history if e.type == event_type]

    def get_errors(self) -> List[tuple[Event, Exception]]:
        """Get (event, exception) pairs for failed handlers"""
        return self._handler_errors.copy()

    def clear_errors(self) -> None:
        """Clear handler error log"""
        self._handler_errors.clear()


def _type_key(event_type: Any) -> str:
    """Normalize EventType members and plain strings to the same key"""
    if isinstance(event_type, EventType):
        return event_type.value
    return str(event_type)
