"""
Shipments - Tracked parcel records and the status state machine
"""

from .models import ShipmentStatus, StatusEvent, ShipmentRecord, normalize_tag

__all__ = [
    "ShipmentStatus",
    "StatusEvent",
    "ShipmentRecord",
    "normalize_tag",
]
