"""
Unit tests for Event system

Tests the event bus and event handling functionality.
"""
import pytest
from batch_executor.core.events import EventBus, Event, EventType, TERMINAL_EVENTS


class TestEvent:
    """Test Event objects"""

    def test_event_creation(self):
        event = Event(type="test", data={"key": "value"})
        assert event.type == "test"
        assert event.data["key"] == "value"
        assert event.timestamp > 0

    def test_event_immutability(self):
        event = Event(type="test", data={"key": "value"})

        with pytest.raises(AttributeError):
            event.type = "modified"

    def test_to_dict(self):
        event = Event(type="item_completed", data={"id": "a"}, source="executor", correlation_id="run-1")
        data = event.to_dict()

        assert data["type"] == "item_completed"
        assert data["data"] == {"id": "a"}
        assert data["source"] == "executor"
        assert data["correlation_id"] == "run-1"

    def test_terminal_events(self):
        assert TERMINAL_EVENTS == {"run_completed", "run_cancelled"}


class TestEventBus:
    """Test EventBus functionality"""

    @pytest.mark.asyncio
    async def test_event_emission(self):
        bus = EventBus()
        received_events = []

        async def handler(event: Event):
            received_events.append(event)

        bus.on("test_event", handler)
        await bus.emit("test_event", data={"test": "data"})

        assert len(received_events) == 1
        assert received_events[0].type == "test_event"
        assert received_events[0].data["test"] == "data"

    @pytest.mark.asyncio
    async def test_enum_and_string_keys_match(self):
        bus = EventBus()
        received = []

        async def handler(event: Event):
            received.append(event.type)

        bus.on(EventType.ITEM_COMPLETED, handler)
        await bus.emit("item_completed")
        await bus.emit(EventType.ITEM_COMPLETED)

        assert received == ["item_completed", "item_completed"]

    @pytest.mark.asyncio
    async def test_multiple_handlers(self):
        bus = EventBus()
        calls = []

        async def handler1(event: Event):
            calls.append("handler1")

        async def handler2(event: Event):
            calls.append("handler2")

        bus.on("test", handler1)
        bus.on("test", handler2)
        await bus.emit("test")

        assert sorted(calls) == ["handler1", "handler2"]

    @pytest.mark.asyncio
    async def test_wildcard_handler(self):
        bus = EventBus()
        received = []

        async def handler(event: Event):
            received.append(event.type)

        bus.on("*", handler)
        await bus.emit("event1")
        await bus.emit("event2")

        assert received == ["event1", "event2"]

    @pytest.mark.asyncio
    async def test_wildcard_does_not_accumulate(self):
        """Repeated emits call each wildcard handler once per event"""
        bus = EventBus()
        typed = []
        wildcard = []

        async def typed_handler(event: Event):
            typed.append(event.type)

        async def wildcard_handler(event: Event):
            wildcard.append(event.type)

        bus.on("test", typed_handler)
        bus.on("*", wildcard_handler)
        await bus.emit("test")
        await bus.emit("test")

        assert len(typed) == 2
        assert len(wildcard) == 2
        assert len(bus.handlers["test"]) == 1

    @pytest.mark.asyncio
    async def test_plain_function_handlers(self):
        bus = EventBus()
        received = []

        def handler(event: Event):
            received.append(event.type)

        def broken(event: Event):
            raise ValueError("sync bug")

        bus.on("test", handler)
        bus.on("test", broken)
        await bus.emit("test")

        assert received == ["test"]
        assert len(bus.get_errors()) == 1
        assert isinstance(bus.get_errors()[0][1], ValueError)

    @pytest.mark.asyncio
    async def test_handler_removal(self):
        bus = EventBus()
        calls = []

        async def handler(event: Event):
            calls.append(1)

        bus.on("test", handler)
        await bus.emit("test")
        bus.off("test", handler)
        await bus.emit("test")

        assert calls == [1]

    @pytest.mark.asyncio
    async def test_handler_error_isolation(self):
        bus = EventBus()
        calls = []

        async def failing_handler(event: Event):
            raise ValueError("Handler error")

        async def working_handler(event: Event):
            calls.append("working")

        bus.on("test", failing_handler)
        bus.on("test", working_handler)
        await bus.emit("test")

        assert calls == ["working"]
        errors = bus.get_errors()
        assert len(errors) == 1
        assert isinstance(errors[0][1], ValueError)

        bus.clear_errors()
        assert bus.get_errors() == []

    @pytest.mark.asyncio
    async def test_event_history(self):
        bus = EventBus(keep_history=True, max_history=2)

        await bus.emit("event1")
        await bus.emit("event2")
        await bus.emit("event2")

        history = bus.get_history()
        assert [e.type for e in history] == ["event2", "event2"]
        assert len(bus.get_history("event1")) == 0

    def test_history_disabled(self):
        bus = EventBus()
        assert bus.get_history() == []

    @pytest.mark.asyncio
    async def test_clear_handlers(self):
        bus = EventBus()
        calls = []

        async def handler(event: Event):
            calls.append(event.type)

        bus.on("a", handler)
        bus.on("b", handler)
        bus.clear_handlers("a")
        await bus.emit("a")
        await bus.emit("b")
        assert calls == ["b"]

        bus.clear_handlers()
        await bus.emit("b")
        assert calls == ["b"]
