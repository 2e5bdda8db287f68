"""Tests for the Event Bus."""

import asyncio
import pytest
from croncue.core.bus import EventBus
from croncue.core.events import Event, EventType


@pytest.mark.asyncio
async def test_emit_and_subscribe(bus: EventBus):
    """Basic pub/sub works."""
    received = []

    async def handler(event: Event):
        received.append(event)

    bus.on(EventType.JOB_CREATED, handler)
    await bus.emit(Event(type=EventType.JOB_CREATED, data={"job_id": "a"}))

    assert len(received) == 1
    assert received[0].data == {"job_id": "a"}


@pytest.mark.asyncio
async def test_wildcard_subscription(bus: EventBus):
    """Wildcard 'jobs:*' matches 'jobs:created' but not trigger events."""
    received = []

    async def handler(event: Event):
        received.append(event.type)

    bus.on(EventType.JOBS_ALL, handler)

    await bus.emit(Event(type=EventType.JOB_CREATED))
    await bus.emit(Event(type=EventType.JOB_DELETED))
    await bus.emit(Event(type=EventType.TRIGGER_WRITTEN))  # should NOT match

    assert received == ["jobs:created", "jobs:deleted"]


@pytest.mark.asyncio
async def test_catch_all_subscription(bus: EventBus):
    """Wildcard '*' matches everything."""
    received = []

    async def handler(event: Event):
        received.append(event.type)

    bus.on(EventType.ALL, handler)

    await bus.emit(Event(type=EventType.JOB_UPDATED))
    await bus.emit(Event(type=EventType.TRIGGER_DELIVERED))
    await bus.emit(Event(type=EventType.SCHEDULER_START))

    assert len(received) == 3


@pytest.mark.asyncio
async def test_sync_handler(bus: EventBus):
    """Plain functions can subscribe too."""
    received = []
    bus.on(EventType.JOB_CREATED, received.append)

    await bus.emit(Event(type=EventType.JOB_CREATED))

    assert len(received) == 1


@pytest.mark.asyncio
async def test_unsubscribe(bus: EventBus):
    """off() removes a handler."""
    received = []

    async def handler(event: Event):
        received.append(event)

    bus.on(EventType.JOB_CREATED, handler)
    await bus.emit(Event(type=EventType.JOB_CREATED))
    assert len(received) == 1

    bus.off(EventType.JOB_CREATED, handler)
    await bus.emit(Event(type=EventType.JOB_CREATED))
    assert len(received) == 1  # no new events
    assert bus.subscriber_count == 0


@pytest.mark.asyncio
async def test_subscriber_error_isolated(bus: EventBus):
    """One bad subscriber doesn't break others."""
    results = {"good": False}

    async def bad_handler(event: Event):
        raise ValueError("I'm broken")

    async def good_handler(event: Event):
        results["good"] = True

    bus.on(EventType.JOB_CREATED, bad_handler)
    bus.on(EventType.JOB_CREATED, good_handler)

    # Should not raise even though bad_handler throws
    await bus.emit(Event(type=EventType.JOB_CREATED))

    assert results["good"] is True


@pytest.mark.asyncio
async def test_emit_nowait_delivers_later(bus: EventBus):
    """emit_nowait schedules delivery on the running loop."""
    received = []
    bus.on(EventType.JOB_DELETED, received.append)

    bus.emit_nowait(Event(type=EventType.JOB_DELETED))
    assert received == []

    await asyncio.sleep(0.01)
    assert len(received) == 1


def test_emit_nowait_without_loop_is_dropped(bus: EventBus):
    """Synchronous callers without a loop do not crash."""
    received = []
    bus.on(EventType.JOB_DELETED, received.append)

    bus.emit_nowait(Event(type=EventType.JOB_DELETED))

    assert received == []


@pytest.mark.asyncio
async def test_no_subscribers(bus: EventBus):
    """Emitting with no subscribers doesn't raise."""
    event = await bus.emit(Event(type="some:random:event"))
    assert event.type == "some:random:event"


@pytest.mark.asyncio
async def test_subscriber_count(bus: EventBus):
    async def handler(e):
        pass

    assert bus.subscriber_count == 0

    bus.on("a", handler)
    bus.on("b", handler)
    bus.on("b", handler)  # duplicate on same type

    assert bus.subscriber_count == 3


@pytest.mark.asyncio
async def test_unsubscribe_bound_method(bus: EventBus):
    """off() matches a bound method even though each access builds a new object."""

    class Recorder:
        def __init__(self):
            self.received = []

        def handle(self, event: Event):
            self.received.append(event)

    recorder = Recorder()
    bus.on(EventType.ALL, recorder.handle)
    bus.off(EventType.ALL, recorder.handle)

    await bus.emit(Event(type=EventType.JOB_CREATED))

    assert recorder.received == []
    assert bus.subscriber_count == 0
