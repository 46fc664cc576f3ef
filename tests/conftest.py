"""Shared fixtures for ParcelTrack tests."""

from datetime import date, datetime, timedelta
from typing import List

import pytest

from parceltrack import Event, TrackingOrchestrator

# Minimum bcrypt work factor keeps password hashing fast in tests
TEST_HASH_ROUNDS = 4

UPS_TRACKING = "1Z999AA10123456784"
FEDEX_TRACKING = "123456789012"
DHL_TRACKING = "1234567890"
DHL_INTL_TRACKING = "DHL1234567X"
HAZMAT_TRACKING = "HZ12345678"


def make_email(
    carrier="UPS",
    tracking=UPS_TRACKING,
    sender="Amazon.com",
    description="Wireless Headphones",
    delivery="2024-02-20",
    origin=None,
    destination=None,
) -> str:
    """Build a shipment notification. Pass None to leave a label out."""
    lines = []
    if sender is not None:
        lines.append(f"From: {sender}")
    lines.append("Subject: Your package is on its way")
    lines.append("")
    if tracking is not None:
        lines.append(f"Tracking Number: {tracking}")
    if carrier is not None:
        lines.append(f"Carrier: {carrier}")
    if delivery is not None:
        lines.append(f"Expected Delivery: {delivery}")
    if origin is not None:
        lines.append(f"Origin Country: {origin}")
    if destination is not None:
        lines.append(f"Destination Country: {destination}")
    lines.append("")
    if description is not None:
        lines.append(f'Your recent order of "{description}" has shipped.')
    return "\n".join(lines)


def tomorrow_iso() -> str:
    return (date.today() + timedelta(days=1)).isoformat()


class FakeClock:
    """Manually advanced clock"""

    def __init__(self, now: datetime = datetime(2024, 2, 18, 9, 0, 0)):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def tracker():
    return TrackingOrchestrator(hash_rounds=TEST_HASH_ROUNDS)


@pytest.fixture
def events(tracker) -> List[Event]:
    received: List[Event] = []
    tracker.subscribe(received.append)
    return received


@pytest.fixture
def session_id(tracker):
    tracker.register_user("alice", "alice@example.com", "s3cret")
    return tracker.login("alice", "s3cret")
