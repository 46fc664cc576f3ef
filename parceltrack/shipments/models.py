"""
ParcelTrack Shipment Models - Tracked parcels and their status history

This module defines:
- ShipmentStatus: The closed set of shipment statuses
- StatusEvent: One entry in a shipment's status history
- ShipmentRecord: A tracked parcel owned by exactly one user

Status transitions are membership checked, not sequence checked: any status
may move to any other status in ShipmentStatus.
"""

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from ..carriers import Carrier
from ..errors import ValidationError


class ShipmentStatus(str, Enum):
    """Shipment status states"""
    IN_TRANSIT = "In Transit"
    OUT_FOR_DELIVERY = "Out for Delivery"
    ARRIVING_SOON = "Arriving Soon"
    DELAYED = "Delayed"
    EXCEPTION = "Exception"
    DELIVERED = "Delivered"

    @classmethod
    def coerce(cls, value: Union["ShipmentStatus", str]) -> "ShipmentStatus":
        """
        Resolve a status from a member, its value ("Out for Delivery"), its
        name ("OUT_FOR_DELIVERY") or its CamelCase name ("OutForDelivery").
        Matching is case-sensitive.

        Raises:
            ValidationError: If value is not a known status
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value)
            except ValueError:
                pass
            member = cls.__members__.get(value)
            if member is not None:
                return member
            for status in cls:
                if status.camel_name == value:
                    return status
        raise ValidationError(
            f"Invalid status {value!r}. Expected one of: "
            f"{', '.join(s.value for s in cls)}"
        )

    @property
    def camel_name(self) -> str:
        """CamelCase form of the value, e.g. OutForDelivery"""
        return "".join(word[:1].upper() + word[1:] for word in self.value.split())


@dataclass(frozen=True)
class StatusEvent:
    """A status change recorded in shipment history"""
    status: ShipmentStatus
    timestamp: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "timestamp": self.timestamp.isoformat(),
        }


class ShipmentRecord:
    """
    A tracked parcel.

    The tracking link is computed once from the carrier and tracking number.
    History is append only and its timestamps never go backwards.

    Args:
        tracking_number: Must validate against the carrier's pattern
        carrier: The carrier handling the parcel
        sender: Opaque sender display string
        description: What is being shipped
        estimated_delivery: Expected delivery date
        origin_country: ISO-ish country code
        destination_country: ISO-ish country code
        clock: Returns "now" for history timestamps

    Raises:
        ValidationError: If the tracking number does not match the carrier
    """

    def __init__(
        self,
        tracking_number: str,
        carrier: Carrier,
        sender: str,
        description: str,
        estimated_delivery: date,
        origin_country: str = "US",
        destination_country: str = "US",
        clock: Callable[[], datetime] = datetime.now,
    ):
        if not carrier.validate(tracking_number):
            raise ValidationError(
                f"Tracking number {tracking_number!r} is not valid for carrier {carrier.code}"
            )

        self._tracking_number = tracking_number
        self._carrier = carrier
        self._tracking_link = carrier.generate_link(tracking_number)
        self._clock = clock

        self.sender = sender
        self.description = description
        self.estimated_delivery = estimated_delivery
        self.origin_country = origin_country
        self.destination_country = destination_country

        self._status = ShipmentStatus.IN_TRANSIT
        self._tags: List[str] = []
        self._history: List[StatusEvent] = []

        self.customs_status: Optional[str] = None
        self.estimated_customs_hours: Optional[int] = None
        self.created_at = clock()

    @property
    def tracking_number(self) -> str:
        return self._tracking_number

    @property
    def carrier(self) -> Carrier:
        return self._carrier

    @property
    def tracking_link(self) -> str:
        return self._tracking_link

    @property
    def status(self) -> ShipmentStatus:
        return self._status

    @property
    def tags(self) -> Tuple[str, ...]:
        return tuple(self._tags)

    @property
    def history(self) -> Tuple[StatusEvent, ...]:
        return tuple(self._history)

    # ===== Status =====

    def update_status(self, new_status: Union[ShipmentStatus, str]) -> StatusEvent:
        """
        Move to a new status and record it in history.

        Raises:
            ValidationError: If new_status is not a ShipmentStatus
        """
        status = ShipmentStatus.coerce(new_status)

        timestamp = self._clock()
        if self._history and timestamp < self._history[-1].timestamp:
            timestamp = self._history[-1].timestamp

        event = StatusEvent(status=status, timestamp=timestamp)
        self._status = status
        self._history.append(event)
        return event

    def update_customs_status(self, customs_status: str) -> int:
        """
        Record customs progress for an international shipment.

        Returns:
            Estimated customs clearance hours for the destination country

        Raises:
            CapabilityError: If the carrier is not international
        """
        hours = self._carrier.estimated_customs_hours(self.destination_country)
        self.customs_status = customs_status
        self.estimated_customs_hours = hours
        return hours

    # ===== Tags =====

    def add_tag(self, tag: str) -> bool:
        """Add a tag. Returns False if it was already present (any case)."""
        normalized = normalize_tag(tag)
        if normalized in self._tags:
            return False
        self._tags.append(normalized)
        return True

    def remove_tag(self, tag: str) -> bool:
        """Remove a tag. Returns False if it was not present."""
        normalized = normalize_tag(tag)
        if normalized not in self._tags:
            return False
        self._tags.remove(normalized)
        return True

    def has_tag(self, tag: str) -> bool:
        return tag.strip().lower() in self._tags

    # ===== Queries =====

    def matches(self, query: str) -> bool:
        """Case-insensitive substring match on tracking number, sender, carrier and tags."""
        needle = query.lower()
        haystack = [
            self._tracking_number,
            self.sender,
            self._carrier.name,
            self._carrier.code,
            *self._tags,
        ]
        return any(needle in value.lower() for value in haystack)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize record to dictionary"""
        return {
            "tracking_number": self._tracking_number,
            "carrier": self._carrier.code,
            "carrier_name": self._carrier.name,
            "sender": self.sender,
            "description": self.description,
            "status": self._status.value,
            "estimated_delivery": self.estimated_delivery.isoformat(),
            "tags": list(self._tags),
            "tracking_link": self._tracking_link,
            "origin_country": self.origin_country,
            "destination_country": self.destination_country,
            "customs_status": self.customs_status,
            "estimated_customs_hours": self.estimated_customs_hours,
            "history": [event.to_dict() for event in self._history],
        }

    def __repr__(self) -> str:
        return (
            f"ShipmentRecord(tracking_number={self._tracking_number!r}, "
            f"carrier={self._carrier.code!r}, status={self._status.value!r})"
        )


def normalize_tag(tag: str) -> str:
    """Lowercase and strip a tag. Blank tags raise ValidationError."""
    normalized = (tag or "").strip().lower()
    if not normalized:
        raise ValidationError("Tag must not be empty")
    return normalized
