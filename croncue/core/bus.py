"""
croncue Event Bus — observer (pub/sub) dispatch for change notifications.

The job repository publishes "jobs:*" events after every mutation and the
watcher publishes "trigger:*" events after every delivery attempt.
Publishing is fire-and-forget: a failing subscriber never affects the
publisher.
"""

from __future__ import annotations

import asyncio
import fnmatch
import inspect
import logging
from typing import Any, Awaitable, Callable

from croncue.core.events import Event

logger = logging.getLogger(__name__)

# Handlers may be plain functions or coroutine functions
EventHandler = Callable[[Event], Awaitable[None] | None]


class EventBus:
    """
    Publish/subscribe event bus.

    Usage:
        bus = EventBus()

        # Subscribe
        bus.on("jobs:created", my_handler)
        bus.on("jobs:*", my_wildcard_handler)
        bus.on("*", my_catch_all_handler)

        # Emit and wait for subscribers
        await bus.emit(Event(type="jobs:created", data={...}))

        # Emit from synchronous code
        bus.emit_nowait(Event(type="jobs:deleted", data={...}))
    """

    def __init__(self) -> None:
        self._subscribers: dict[str, list[EventHandler]] = {}

    # ━━━ Subscription ━━━

    def on(self, event_type: str, handler: EventHandler) -> None:
        """Subscribe to an event type. Supports wildcards: 'jobs:*', '*'."""
        if event_type not in self._subscribers:
            self._subscribers[event_type] = []
        self._subscribers[event_type].append(handler)

    def off(self, event_type: str, handler: EventHandler) -> None:
        """Unsubscribe from an event type."""
        if event_type in self._subscribers:
            self._subscribers[event_type] = [
                h for h in self._subscribers[event_type] if h != handler
            ]
            if not self._subscribers[event_type]:
                del self._subscribers[event_type]

    # ━━━ Emission ━━━

    async def emit(self, event: Event) -> Event:
        """
        Deliver an event to every matching subscriber.

        Subscribers execute concurrently. Subscriber errors are logged,
        never raised. Returns the event.
        """
        handlers = self._find_handlers(event.type)
        if handlers:
            results = await asyncio.gather(
                *(self._call_handler(h, event) for h in handlers),
                return_exceptions=True,
            )
            for result in results:
                if isinstance(result, Exception):
                    logger.error(
                        f"Subscriber error for {event.type}: {result}",
                        exc_info=result,
                    )
        return event

    def emit_nowait(self, event: Event) -> None:
        """
        Emit an event without waiting for processing.

        Used by synchronous publishers such as the job repository.
        Without a running event loop the event is dropped (no subscriber
        could be awaiting it anyway).
        """
        if not self._find_handlers(event.type):
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug(f"No event loop for nowait emit: {event.type}")
            return
        loop.create_task(self._emit_safe(event))

    # ━━━ Internals ━━━

    def _find_handlers(self, event_type: str) -> list[EventHandler]:
        """Find all handlers matching an event type, including wildcards."""
        handlers: list[EventHandler] = []

        for pattern, subs in self._subscribers.items():
            if pattern == event_type or pattern == "*":
                handlers.extend(subs)
            elif "*" in pattern and fnmatch.fnmatch(event_type, pattern):
                handlers.extend(subs)

        return handlers

    @staticmethod
    async def _call_handler(handler: EventHandler, event: Event) -> Any:
        result = handler(event)
        if inspect.isawaitable(result):
            await result

    async def _emit_safe(self, event: Event) -> None:
        """Emit with error catching for fire-and-forget."""
        try:
            await self.emit(event)
        except Exception as e:
            logger.error(f"Error in nowait emit for {event.type}: {e}")

    @property
    def subscriber_count(self) -> int:
        """Total number of subscriptions (for debugging)."""
        return sum(len(subs) for subs in self._subscribers.values())
