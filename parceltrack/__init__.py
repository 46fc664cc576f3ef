"""
ParcelTrack - Turn shipment notification emails into tracked packages

ParcelTrack reads free-text shipment notifications, binds each one to a known
carrier, and keeps the resulting shipments per user with status history,
tags and delivery alerts.

Key Features:
- Carrier registry with International and Hazmat capability variants
- Label-driven extraction ("Carrier:", "From:", "Expected Delivery:", ...)
- Per-user ownership behind login sessions (salted password hashes)
- Synchronous event bus: NEW_PACKAGE, STATUS_UPDATE, DELIVERY_TOMORROW
- YAML configuration with ${VAR} substitution

Quick Start:
    from parceltrack import TrackingOrchestrator, EventType

    tracker = TrackingOrchestrator()
    tracker.subscribe(lambda event: print(event.event_type.value, event.data["tracking_number"]))

    tracker.register_user("alice", "alice@example.com", "s3cret")
    session_id = tracker.login("alice", "s3cret")

    record = tracker.extract_from_email('''
        From: Amazon.com
        Carrier: UPS
        Tracking Number: 1Z999AA10123456784
        Expected Delivery: 2024-02-20
        Your recent order of "Wireless Headphones" has shipped.
    ''', session_id)

    tracker.update_package_status(record.tracking_number, "Delivered", session_id)

From a config file:
    from parceltrack import create_tracker

    tracker = create_tracker("parceltrack.yaml")
"""

__version__ = "0.1.0"

# Errors
from .errors import (
    ParcelTrackError,
    ValidationError,
    CapabilityError,
    AuthenticationError,
    AuthenticationRequiredError,
    DuplicateUserError,
    ShipmentNotFoundError,
    ConfigError,
)

# Carriers
from .carriers import (
    Carrier,
    CarrierVariant,
    InternationalProfile,
    HazmatProfile,
    CarrierRegistry,
    default_carriers,
)

# Extraction
from .extraction import ExtractionEngine, ShipmentDraft

# Shipments
from .shipments import ShipmentStatus, StatusEvent, ShipmentRecord

# Sessions
from .sessions import SessionStore, Session, User, UserPreferences

# Events
from .events import Event, EventBus, EventType

# Orchestrator and application
from .orchestrator import TrackingOrchestrator
from .app import build_orchestrator, create_tracker, load_config

__all__ = [
    # Errors
    "ParcelTrackError",
    "ValidationError",
    "CapabilityError",
    "AuthenticationError",
    "AuthenticationRequiredError",
    "DuplicateUserError",
    "ShipmentNotFoundError",
    "ConfigError",
    # Carriers
    "Carrier",
    "CarrierVariant",
    "InternationalProfile",
    "HazmatProfile",
    "CarrierRegistry",
    "default_carriers",
    # Extraction
    "ExtractionEngine",
    "ShipmentDraft",
    # Shipments
    "ShipmentStatus",
    "StatusEvent",
    "ShipmentRecord",
    # Sessions
    "SessionStore",
    "Session",
    "User",
    "UserPreferences",
    # Events
    "Event",
    "EventBus",
    "EventType",
    # Orchestrator
    "TrackingOrchestrator",
    "build_orchestrator",
    "create_tracker",
    "load_config",
]
