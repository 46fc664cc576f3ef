"""
Extraction - Label-driven parsing of shipment notifications
"""

from .engine import ExtractionEngine, ShipmentDraft

__all__ = [
    "ExtractionEngine",
    "ShipmentDraft",
]
