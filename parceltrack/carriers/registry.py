"""
Carrier Registry - Holds the closed set of carriers known to a tracker

The registry is built once when the orchestrator starts and is never a
process-wide global. Each orchestrator owns its own instance.
"""

import logging
import re
from typing import Any, Dict, Iterator, List, Optional

from ..errors import ConfigError
from .models import (
    Carrier,
    CarrierVariant,
    HazmatProfile,
    InternationalProfile,
    DEFAULT_CLEARANCE_HOURS,
    DEFAULT_HANDLING_INSTRUCTIONS,
)

logger = logging.getLogger(__name__)


class CarrierRegistry:
    """
    Registry of carriers keyed by code.

    Example:
        registry = CarrierRegistry(default_carriers())
        ups = registry.lookup("ups")
        registry.validate("1Z999AA10123456784", ups)  # True
        registry.generate_link(ups, "1Z999AA10123456784")
    """

    def __init__(self, carriers: Optional[List[Carrier]] = None):
        self._carriers: Dict[str, Carrier] = {}
        for carrier in carriers or []:
            self.register(carrier)

    def register(self, carrier: Carrier) -> None:
        """Register a carrier. A code can only be registered once."""
        if carrier.code in self._carriers:
            raise ValueError(f"Carrier already registered: {carrier.code}")
        self._carriers[carrier.code] = carrier
        logger.debug(f"Registered carrier {carrier.code} ({carrier.variant.value})")

    def lookup(self, code: str) -> Optional[Carrier]:
        """Get carrier by code (case-insensitive)"""
        if not code:
            return None
        return self._carriers.get(code.strip().upper())

    def validate(self, tracking_number: str, carrier: Carrier) -> bool:
        return carrier.validate(tracking_number)

    def generate_link(self, carrier: Carrier, tracking_number: str) -> str:
        return carrier.generate_link(tracking_number)

    def codes(self) -> List[str]:
        return list(self._carriers.keys())

    def __contains__(self, code: str) -> bool:
        return self.lookup(code) is not None

    def __iter__(self) -> Iterator[Carrier]:
        return iter(self._carriers.values())

    def __len__(self) -> int:
        return len(self._carriers)


def default_carriers() -> List[Carrier]:
    """Carriers available when no carrier config is given."""
    return [
        Carrier(
            code="FEDEX",
            name="FedEx",
            tracking_pattern=r"(\b\d{12}\b|\b\d{15}\b)",
            link_template="https://www.fedex.com/fedextrack/?trknbr={tracking_number}",
        ),
        Carrier(
            code="UPS",
            name="UPS",
            tracking_pattern=r"\b1Z[A-Z0-9]{16}\b",
            link_template="https://www.ups.com/track?tracknum={tracking_number}",
        ),
        Carrier(
            code="DHL",
            name="DHL",
            tracking_pattern=r"\b\d{10}\b",
            link_template="https://www.dhl.com/track?trackingNumber={tracking_number}",
        ),
        Carrier(
            code="DHLINTL",
            name="DHL International",
            tracking_pattern=r"\b(DHL[A-Z0-9]{7}X)\b",
            link_template="https://www.dhl.com/track?trackingNumber={tracking_number}",
            variant=CarrierVariant.INTERNATIONAL,
            international=InternationalProfile(
                countries=frozenset({"US", "UK", "CN", "JP", "DE"}),
                clearance_hours={"US": 24, "UK": 48, "DE": 48, "JP": 72, "CN": 96},
            ),
        ),
        Carrier(
            code="HAZMAT",
            name="Chemical Logistics",
            tracking_pattern=r"\bHZ\d{8}\b",
            link_template="https://chemlog.com/track/{tracking_number}",
            variant=CarrierVariant.HAZMAT,
            hazmat=HazmatProfile(
                hazard_classes=frozenset({"flammable", "corrosive", "radioactive"}),
                handling={
                    "flammable": "Keep away from heat sources",
                    "corrosive": "Handle with protective gear",
                    "radioactive": "Special containment required",
                },
            ),
        ),
    ]


def carrier_from_config(data: Dict[str, Any]) -> Carrier:
    """
    Build a Carrier from a config dict (one entry of the `carriers` list).

    Raises:
        ConfigError: If a field is missing or invalid
    """
    try:
        code = data["code"]
        link_template = data["link_template"]
        pattern = data["tracking_pattern"]
    except KeyError as e:
        raise ConfigError(f"Carrier config missing required field: {e.args[0]}")

    try:
        variant = CarrierVariant(str(data.get("variant", "standard")).lower())
    except ValueError:
        raise ConfigError(f"Unknown carrier variant for {code}: {data.get('variant')}")

    if variant != CarrierVariant.STANDARD and not isinstance(data.get(variant.value), dict):
        raise ConfigError(f"Carrier {code} is {variant.value} but has no '{variant.value}' section")

    international = None
    hazmat = None
    if variant == CarrierVariant.INTERNATIONAL:
        intl = data["international"]
        international = InternationalProfile(
            countries=frozenset(intl.get("countries", [])),
            clearance_hours=dict(intl.get("clearance_hours") or {}),
            default_clearance_hours=int(
                intl.get("default_clearance_hours", DEFAULT_CLEARANCE_HOURS)
            ),
        )
    elif variant == CarrierVariant.HAZMAT:
        hz = data["hazmat"]
        hazmat = HazmatProfile(
            hazard_classes=frozenset(hz.get("classes", [])),
            handling=dict(hz.get("handling") or {}),
            default_instructions=hz.get("default_instructions", DEFAULT_HANDLING_INSTRUCTIONS),
        )

    try:
        return Carrier(
            code=str(code),
            name=str(data.get("name", code)),
            tracking_pattern=pattern,
            link_template=link_template,
            variant=variant,
            international=international,
            hazmat=hazmat,
        )
    except re.error as e:
        raise ConfigError(f"Invalid tracking pattern for {code}: {e}")
    except ValueError as e:
        raise ConfigError(str(e))
