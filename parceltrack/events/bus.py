"""ParcelTrack EventBus: synchronous, ordered in-process pub/sub."""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)


class EventType(str, Enum):
    """Events published by the tracking orchestrator"""
    NEW_PACKAGE = "NEW_PACKAGE"
    STATUS_UPDATE = "STATUS_UPDATE"
    DELIVERY_TOMORROW = "DELIVERY_TOMORROW"


@dataclass
class Event:
    """An event published to the EventBus."""
    event_type: EventType
    data: Dict[str, Any] = field(default_factory=dict)
    username: str = ""
    timestamp: Optional[str] = None  # ISO format, auto-set if None


EventHandler = Callable[[Event], Any]


class EventBus:
    """
    Synchronous event bus. Handlers run in subscription order, inside the
    publish() call.

    By default a failing handler is logged and the remaining handlers still
    run. With raise_handler_errors=True the first failure propagates and
    later handlers are skipped. Event timestamps come from clock.

    Usage:
        bus = EventBus()
        bus.subscribe(lambda event: print(event.event_type, event.data))
        bus.publish(Event(event_type=EventType.NEW_PACKAGE, data={...}))
    """

    def __init__(
        self,
        raise_handler_errors: bool = False,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self._handlers: List[EventHandler] = []
        self._raise_handler_errors = raise_handler_errors
        self._clock = clock

    def subscribe(self, handler: EventHandler) -> None:
        """Register a handler called with every published Event."""
        if not callable(handler):
            raise TypeError("Event handler must be callable")
        self._handlers.append(handler)
        logger.info(f"Subscribed event handler: {_handler_name(handler)}")

    def unsubscribe(self, handler: EventHandler) -> bool:
        """Remove a handler. Returns False if it was not subscribed."""
        try:
            self._handlers.remove(handler)
        except ValueError:
            return False
        logger.info(f"Unsubscribed event handler: {_handler_name(handler)}")
        return True

    def publish(self, event: Event) -> None:
        """Dispatch event to every subscriber, in order."""
        if not event.timestamp:
            event.timestamp = self._clock().isoformat()

        logger.debug(f"Publishing event: {event.event_type.value} for {event.username or '-'}")
        # Copy so a handler may unsubscribe itself mid-dispatch
        for handler in list(self._handlers):
            try:
                handler(event)
            except Exception as e:
                if self._raise_handler_errors:
                    raise
                logger.error(
                    f"Event handler {_handler_name(handler)} failed for "
                    f"{event.event_type.value}: {e}",
                    exc_info=True,
                )

    @property
    def handler_count(self) -> int:
        return len(self._handlers)


def _handler_name(handler: EventHandler) -> str:
    return getattr(handler, "__qualname__", None) or repr(handler)
