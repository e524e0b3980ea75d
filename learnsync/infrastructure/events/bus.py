# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""In-memory event bus for learnsync.

The local store announces every committed write through this bus so that
a presentation layer can re-run the queries that depend on the changed
entity kind. Sync and media components publish their lifecycle here too.

The EventBus supports:
- Exact event type matching (e.g., "store.lessons.changed")
- Wildcard pattern matching (e.g., "store.*", "*.failed")
- Async handlers
- Multiple handlers per event type

Example:
    from learnsync.infrastructure.events import EventBus, EventTypes

    bus = EventBus()

    async def on_lessons_changed(event):
        print(event.payload["ids"])

    bus.subscribe(EventTypes.Store.LESSONS_CHANGED, on_lessons_changed)
    await bus.publish(EventTypes.Store.LESSONS_CHANGED, {"ids": ["l-1"]})
"""

import asyncio
import fnmatch
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Awaitable, Callable
from uuid import uuid4

from learnsync.utils.datetime import format_iso, utc_now

logger = logging.getLogger(__name__)

# Type alias for event handlers
EventHandler = Callable[["EventData"], Awaitable[None]]


@dataclass
class EventData:
    """Container for event data with metadata.

    Attributes:
        event_type: The event type string.
        payload: The event payload data.
        event_id: Unique event identifier.
        timestamp: When the event was published.
    """

    event_type: str
    payload: dict[str, Any]
    event_id: str = field(default_factory=lambda: str(uuid4()))
    timestamp: datetime = field(default_factory=utc_now)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "event_id": self.event_id,
            "event_type": self.event_type,
            "payload": self.payload,
            "timestamp": format_iso(self.timestamp),
        }


class EventBus:
    """In-memory async event bus with pattern matching support.

    Designed for single-process asyncio use: handlers run on the
    publisher's event loop and never cross process boundaries.

    Attributes:
        _handlers: Dictionary mapping event types to handler lists.
        _pattern_handlers: Dictionary mapping patterns to handler lists.
    """

    def __init__(self) -> None:
        """Initialize the event bus."""
        self._handlers: dict[str, list[EventHandler]] = {}
        self._pattern_handlers: dict[str, list[EventHandler]] = {}
        self._event_count = 0

    @staticmethod
    def _is_pattern(event_type: str) -> bool:
        return "*" in event_type or "?" in event_type

    def subscribe(self, event_type: str, handler: EventHandler) -> None:
        """Subscribe a handler to an event type or pattern.

        Args:
            event_type: Event type string or pattern with wildcards.
            handler: Async function to call when event is published.
        """
        table = self._pattern_handlers if self._is_pattern(event_type) else self._handlers
        table.setdefault(event_type, []).append(handler)
        logger.debug("Subscribed handler to: %s", event_type)

    def unsubscribe(self, event_type: str, handler: EventHandler) -> bool:
        """Unsubscribe a handler from an event type or pattern.

        Args:
            event_type: Event type string or pattern.
            handler: The handler function to remove.

        Returns:
            True if handler was found and removed, False otherwise.
        """
        table = self._pattern_handlers if self._is_pattern(event_type) else self._handlers
        handlers = table.get(event_type)
        if not handlers:
            return False
        try:
            handlers.remove(handler)
        except ValueError:
            return False
        if not handlers:
            del table[event_type]
        return True

    async def publish(self, event_type: str, payload: dict[str, Any]) -> EventData:
        """Publish an event to all matching subscribers.

        Handlers are called concurrently using asyncio.gather.
        Errors in individual handlers are logged but don't stop
        other handlers from executing, and never reach the publisher.

        Args:
            event_type: The event type string.
            payload: Event data dictionary.

        Returns:
            EventData object with event metadata.
        """
        event = EventData(event_type=event_type, payload=payload)
        self._event_count += 1

        handlers_to_call: list[EventHandler] = list(self._handlers.get(event_type, []))
        for pattern, pattern_handlers in self._pattern_handlers.items():
            if fnmatch.fnmatch(event_type, pattern):
                handlers_to_call.extend(pattern_handlers)

        if not handlers_to_call:
            return event

        logger.debug(
            "Publishing event %s to %d handlers",
            event_type,
            len(handlers_to_call),
        )

        async def safe_call(handler: EventHandler) -> None:
            try:
                await handler(event)
            except Exception as e:
                logger.error(
                    "Handler error for event %s: %s",
                    event_type,
                    str(e),
                    exc_info=True,
                )

        await asyncio.gather(*[safe_call(handler) for handler in handlers_to_call])
        return event

    def clear(self) -> None:
        """Remove all subscriptions."""
        self._handlers.clear()
        self._pattern_handlers.clear()

    @property
    def event_count(self) -> int:
        """Number of events published so far."""
        return self._event_count
