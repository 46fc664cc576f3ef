"""
Extraction Engine - Turn a shipment notification into a ShipmentDraft

Messages are label driven and the labels may appear in any order:

    From: Amazon.com
    Carrier: UPS
    Tracking Number: 1Z999AA10123456784
    Expected Delivery: 2024-02-20
    Your recent order of "Wireless Headphones" has shipped.
    Origin Country: CN
    Destination Country: US

Only the declared carrier's pattern is tried. A message that names a carrier
we don't know is rejected even if another carrier's pattern would match.
"""

import logging
import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any, Callable, Dict, Optional

from dateutil import parser as date_parser

from ..carriers import Carrier, CarrierRegistry

logger = logging.getLogger(__name__)

DEFAULT_SENDER = "Unknown Sender"
DEFAULT_DESCRIPTION = "Package"
DEFAULT_COUNTRY = "US"
DEFAULT_DELIVERY_WINDOW = timedelta(hours=24)

_CARRIER_RE = re.compile(r"\bCarrier:[ \t]*(\w+)")
_SENDER_RE = re.compile(r"\bFrom:[ \t]*(.+)")
_DESCRIPTION_RE = re.compile(r'order of "([^"]+)"')
_DELIVERY_RE = re.compile(r"Expected Delivery:[ \t]*(\d{4}-\d{2}-\d{2})")
_ORIGIN_RE = re.compile(r"Origin Country:[ \t]*(\w+)")
_DESTINATION_RE = re.compile(r"Destination Country:[ \t]*(\w+)")


@dataclass
class ShipmentDraft:
    """Result of a successful parse, bound to the resolved Carrier."""
    tracking_number: str
    carrier: Carrier
    sender: str
    description: str
    estimated_delivery: date
    origin_country: str = DEFAULT_COUNTRY
    destination_country: str = DEFAULT_COUNTRY

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tracking_number": self.tracking_number,
            "carrier": self.carrier.code,
            "sender": self.sender,
            "description": self.description,
            "estimated_delivery": self.estimated_delivery.isoformat(),
            "origin_country": self.origin_country,
            "destination_country": self.destination_country,
        }


class ExtractionEngine:
    """
    Stateless parser for shipment notifications.

    Args:
        registry: Carriers that may be declared in a message
        clock: Returns "now", used for the default delivery date
    """

    def __init__(self, registry: CarrierRegistry, clock: Callable[[], datetime] = datetime.now):
        self._registry = registry
        self._clock = clock

    def parse(self, raw_text: str) -> Optional[ShipmentDraft]:
        """
        Parse raw message text.

        Returns:
            ShipmentDraft, or None if the carrier label is missing, the
            carrier is unknown, no tracking number matches, or the delivery
            date is not a real calendar date.
        """
        if not raw_text:
            logger.info("Parse failed: empty message")
            return None

        carrier_match = _CARRIER_RE.search(raw_text)
        if not carrier_match:
            logger.info("Parse failed: no 'Carrier:' label")
            return None

        token = carrier_match.group(1).upper()
        carrier = self._registry.lookup(token)
        if carrier is None:
            logger.warning(f"Parse failed: unknown carrier '{token}'")
            return None

        tracking_number = carrier.find_tracking_number(raw_text)
        if not tracking_number:
            logger.warning(f"Parse failed: no {carrier.code} tracking number in message")
            return None

        try:
            estimated_delivery = self._extract_delivery_date(raw_text)
        except ValueError as e:
            logger.warning(f"Parse failed: invalid expected delivery date ({e})")
            return None

        draft = ShipmentDraft(
            tracking_number=tracking_number,
            carrier=carrier,
            sender=self._extract_sender(raw_text),
            description=self._extract_description(raw_text),
            estimated_delivery=estimated_delivery,
            origin_country=_extract_country(_ORIGIN_RE, raw_text),
            destination_country=_extract_country(_DESTINATION_RE, raw_text),
        )
        logger.debug(f"Parsed draft: {draft.to_dict()}")
        return draft

    def _extract_sender(self, text: str) -> str:
        match = _SENDER_RE.search(text)
        sender = match.group(1).strip() if match else ""
        return sender or DEFAULT_SENDER

    def _extract_description(self, text: str) -> str:
        match = _DESCRIPTION_RE.search(text)
        description = match.group(1).strip() if match else ""
        return description or DEFAULT_DESCRIPTION

    def _extract_delivery_date(self, text: str) -> date:
        match = _DELIVERY_RE.search(text)
        if not match:
            return (self._clock() + DEFAULT_DELIVERY_WINDOW).date()
        return date_parser.isoparse(match.group(1)).date()


def _extract_country(pattern: re.Pattern, text: str) -> str:
    match = pattern.search(text)
    return match.group(1).upper() if match else DEFAULT_COUNTRY
