"""
ParcelTrack Carrier Models - Carriers and their capability variants

This module defines:
- CarrierVariant: Closed set of carrier kinds (standard, international, hazmat)
- InternationalProfile: Extra data for carriers that ship across borders
- HazmatProfile: Extra data for carriers that handle hazardous materials
- Carrier: A registered shipping provider

Capabilities are reached by checking the variant, not by subclassing:

    if carrier.is_international:
        hours = carrier.estimated_customs_hours("JP")
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, FrozenSet, Optional, Union

from ..errors import CapabilityError

TRACKING_PLACEHOLDER = "{tracking_number}"

DEFAULT_CLEARANCE_HOURS = 72
DEFAULT_HANDLING_INSTRUCTIONS = "Standard handling procedures apply"


class CarrierVariant(str, Enum):
    """Carrier capability variants"""
    STANDARD = "standard"
    INTERNATIONAL = "international"
    HAZMAT = "hazmat"


@dataclass(frozen=True)
class InternationalProfile:
    """Supported countries and customs clearance estimates"""
    countries: FrozenSet[str] = field(default_factory=frozenset)
    clearance_hours: Dict[str, int] = field(default_factory=dict)
    default_clearance_hours: int = DEFAULT_CLEARANCE_HOURS

    def __post_init__(self):
        object.__setattr__(self, "countries", frozenset(c.upper() for c in self.countries))
        object.__setattr__(
            self, "clearance_hours", {k.upper(): int(v) for k, v in self.clearance_hours.items()}
        )


@dataclass(frozen=True)
class HazmatProfile:
    """Allowed hazard classes and their handling instructions"""
    hazard_classes: FrozenSet[str] = field(default_factory=frozenset)
    handling: Dict[str, str] = field(default_factory=dict)
    default_instructions: str = DEFAULT_HANDLING_INSTRUCTIONS

    def __post_init__(self):
        object.__setattr__(self, "hazard_classes", frozenset(c.lower() for c in self.hazard_classes))
        object.__setattr__(self, "handling", {k.lower(): v for k, v in self.handling.items()})


@dataclass(frozen=True, eq=False)
class Carrier:
    """
    A shipping provider.

    Attributes:
        code: Registry key, the token used in a "Carrier: <code>" label
        name: Display name (e.g. "DHL International")
        tracking_pattern: Regex locating a tracking number in text. If it has
            a capture group, the first group is the tracking number.
        link_template: Tracking URL with one {tracking_number} placeholder
        variant: Capability variant
        international: Profile, required when variant is INTERNATIONAL
        hazmat: Profile, required when variant is HAZMAT
    """
    code: str
    name: str
    tracking_pattern: Union[str, re.Pattern]
    link_template: str
    variant: CarrierVariant = CarrierVariant.STANDARD
    international: Optional[InternationalProfile] = None
    hazmat: Optional[HazmatProfile] = None

    def __post_init__(self):
        if not self.code or not re.fullmatch(r"\w+", self.code):
            raise ValueError(f"Carrier code must be a single word token, got {self.code!r}")
        object.__setattr__(self, "code", self.code.upper())
        object.__setattr__(self, "variant", CarrierVariant(self.variant))

        pattern = self.tracking_pattern
        if isinstance(pattern, str):
            pattern = re.compile(pattern)
        object.__setattr__(self, "tracking_pattern", pattern)

        if self.link_template.count(TRACKING_PLACEHOLDER) != 1:
            raise ValueError(
                f"Link template for {self.code} must contain exactly one "
                f"{TRACKING_PLACEHOLDER} placeholder"
            )
        if self.variant == CarrierVariant.INTERNATIONAL and self.international is None:
            raise ValueError(f"International carrier {self.code} needs an international profile")
        if self.variant == CarrierVariant.HAZMAT and self.hazmat is None:
            raise ValueError(f"Hazmat carrier {self.code} needs a hazmat profile")

    # ===== Tracking numbers =====

    def find_tracking_number(self, text: str) -> Optional[str]:
        """Return the first tracking number found in text, or None."""
        match = self.tracking_pattern.search(text)
        if not match:
            return None
        if self.tracking_pattern.groups:
            return match.group(1)
        return match.group(0)

    def validate(self, tracking_number: str) -> bool:
        """True when the pattern extracts exactly this tracking number."""
        if not tracking_number:
            return False
        return self.find_tracking_number(tracking_number) == tracking_number

    def generate_link(self, tracking_number: str) -> str:
        return self.link_template.replace(TRACKING_PLACEHOLDER, tracking_number)

    # ===== Capabilities =====

    @property
    def is_international(self) -> bool:
        return self.variant == CarrierVariant.INTERNATIONAL

    @property
    def is_hazmat(self) -> bool:
        return self.variant == CarrierVariant.HAZMAT

    def _require(self, variant: CarrierVariant) -> None:
        if self.variant != variant:
            raise CapabilityError(
                f"Carrier {self.code} is {self.variant.value}, not {variant.value}"
            )

    def validate_destination(self, country: str) -> bool:
        self._require(CarrierVariant.INTERNATIONAL)
        return country.upper() in self.international.countries

    def estimated_customs_hours(self, country: str) -> int:
        self._require(CarrierVariant.INTERNATIONAL)
        profile = self.international
        return profile.clearance_hours.get(country.upper(), profile.default_clearance_hours)

    def validate_hazmat_class(self, hazard_class: str) -> bool:
        self._require(CarrierVariant.HAZMAT)
        return hazard_class.lower() in self.hazmat.hazard_classes

    def handling_instructions(self, hazard_class: str) -> str:
        self._require(CarrierVariant.HAZMAT)
        profile = self.hazmat
        return profile.handling.get(hazard_class.lower(), profile.default_instructions)

    def to_dict(self) -> Dict[str, object]:
        return {
            "code": self.code,
            "name": self.name,
            "variant": self.variant.value,
            "tracking_pattern": self.tracking_pattern.pattern,
            "link_template": self.link_template,
        }
