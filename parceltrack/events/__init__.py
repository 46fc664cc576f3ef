"""
Events - Synchronous notifications for new packages, status changes and delivery alerts
"""

from .bus import Event, EventBus, EventHandler, EventType

__all__ = [
    "Event",
    "EventBus",
    "EventHandler",
    "EventType",
]
