"""
Carriers - Shipping providers, capability variants and the registry
"""

from .models import (
    Carrier,
    CarrierVariant,
    InternationalProfile,
    HazmatProfile,
    TRACKING_PLACEHOLDER,
)
from .registry import CarrierRegistry, default_carriers, carrier_from_config

__all__ = [
    "Carrier",
    "CarrierVariant",
    "InternationalProfile",
    "HazmatProfile",
    "TRACKING_PLACEHOLDER",
    "CarrierRegistry",
    "default_carriers",
    "carrier_from_config",
]
