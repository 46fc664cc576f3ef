"""
ParcelTrack Orchestrator - Public operation surface for shipment tracking

Composes the carrier registry, extraction engine, session store and event bus.
Every operation is synchronous. Mutations of one user's shipments are
serialized by that user's lock; different users never contend.

Usage:
    tracker = TrackingOrchestrator()
    tracker.subscribe(lambda event: print(event.event_type, event.data))

    tracker.register_user("alice", "alice@example.com", "s3cret")
    session_id = tracker.login("alice", "s3cret")

    record = tracker.extract_from_email(email_text, session_id)
    tracker.update_package_status(record.tracking_number, "Delivered", session_id)
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional, Union

from .carriers import Carrier, CarrierRegistry, default_carriers
from .errors import AuthenticationRequiredError, ShipmentNotFoundError
from .events import Event, EventBus, EventHandler, EventType
from .extraction import ExtractionEngine
from .sessions import SessionStore, User, UserPreferences
from .sessions.store import BCRYPT_ROUNDS
from .shipments import ShipmentRecord, ShipmentStatus

logger = logging.getLogger(__name__)


class TrackingOrchestrator:
    """
    Tracks shipments extracted from notification messages, per user.

    Args:
        carriers: Carriers to register. Defaults to default_carriers().
        session_ttl: Seconds a login session stays valid (None = until logout)
        raise_handler_errors: Propagate the first event handler failure
            instead of logging it and continuing
        hash_rounds: bcrypt work factor for password hashes
        clock: Returns "now"; shared by every component
    """

    def __init__(
        self,
        carriers: Optional[List[Carrier]] = None,
        session_ttl: Optional[float] = None,
        raise_handler_errors: bool = False,
        hash_rounds: int = BCRYPT_ROUNDS,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self._clock = clock
        self.registry = CarrierRegistry(default_carriers() if carriers is None else carriers)
        self.engine = ExtractionEngine(self.registry, clock=clock)
        self.sessions = SessionStore(
            session_ttl=session_ttl,
            hash_rounds=hash_rounds,
            clock=clock,
        )
        self.event_bus = EventBus(raise_handler_errors=raise_handler_errors, clock=clock)
        logger.info(f"TrackingOrchestrator initialized with carriers: {self.registry.codes()}")

    # ===== Users and sessions =====

    def register_user(self, username: str, email: str, password: str) -> User:
        return self.sessions.register_user(username, email, password)

    def login(self, username: str, password: str) -> str:
        return self.sessions.login(username, password)

    def logout(self, session_id: str) -> None:
        self.sessions.logout(session_id)

    def get_preferences(self, session_id: Optional[str]) -> UserPreferences:
        return self._require_user(session_id).preferences

    def _require_user(self, session_id: Optional[str]) -> User:
        user = self.sessions.get_user(session_id)
        if user is None:
            raise AuthenticationRequiredError("User not logged in")
        return user

    # ===== Events =====

    def subscribe(self, handler: EventHandler) -> None:
        self.event_bus.subscribe(handler)

    def unsubscribe(self, handler: EventHandler) -> bool:
        return self.event_bus.unsubscribe(handler)

    def _emit(self, user: User, event_type: EventType, data: Dict[str, Any]) -> None:
        if not user.preferences.notifications_enabled:
            logger.debug(f"Notifications disabled for {user.username}, skipping {event_type.value}")
            return
        self.event_bus.publish(Event(event_type=event_type, data=data, username=user.username))

    def _is_due_tomorrow(self, record: ShipmentRecord) -> bool:
        tomorrow = self._clock().date() + timedelta(days=1)
        return record.estimated_delivery == tomorrow

    def _delivery_tomorrow_payload(self, record: ShipmentRecord) -> Dict[str, Any]:
        return {
            "tracking_number": record.tracking_number,
            "estimated_delivery": record.estimated_delivery.isoformat(),
            "shipment": record,
        }

    # ===== Extraction =====

    def extract_from_email(self, raw_text: str, session_id: Optional[str]) -> Optional[ShipmentRecord]:
        """
        Parse a notification and attach the shipment to the session's user.

        Emits NEW_PACKAGE, plus DELIVERY_TOMORROW when the estimated delivery
        date is tomorrow. A tracking number the user already has is not
        added twice; the existing record is returned without events.

        Returns:
            The shipment, or None if the text could not be parsed

        Raises:
            AuthenticationRequiredError: If session_id is not an active session
        """
        user = self._require_user(session_id)

        draft = self.engine.parse(raw_text)
        if draft is None:
            return None

        with user.lock:
            existing = user.find_shipment(draft.tracking_number)
            if existing is not None:
                logger.info(
                    f"Shipment {draft.tracking_number} already tracked for {user.username}"
                )
                return existing

            record = ShipmentRecord(
                tracking_number=draft.tracking_number,
                carrier=draft.carrier,
                sender=draft.sender,
                description=draft.description,
                estimated_delivery=draft.estimated_delivery,
                origin_country=draft.origin_country,
                destination_country=draft.destination_country,
                clock=self._clock,
            )
            for tag in user.preferences.default_tags:
                record.add_tag(tag)
            user.add_shipment(record)

        logger.info(
            f"New shipment {record.tracking_number} ({record.carrier.code}) for {user.username}"
        )
        self._emit(user, EventType.NEW_PACKAGE, {
            "tracking_number": record.tracking_number,
            "carrier": record.carrier.code,
            "shipment": record,
        })
        if self._is_due_tomorrow(record):
            self._emit(user, EventType.DELIVERY_TOMORROW, self._delivery_tomorrow_payload(record))
        return record

    # ===== Queries =====

    def get_packages_sorted(self, session_id: Optional[str]) -> List[ShipmentRecord]:
        """User's shipments, earliest estimated delivery first (stable on ties)."""
        user = self._require_user(session_id)
        with user.lock:
            return sorted(user.shipments, key=lambda r: r.estimated_delivery)

    def filter_by_status(
        self, status: Union[ShipmentStatus, str], session_id: Optional[str]
    ) -> List[ShipmentRecord]:
        """
        Raises:
            ValidationError: If status is not a ShipmentStatus
        """
        user = self._require_user(session_id)
        wanted = ShipmentStatus.coerce(status)
        with user.lock:
            return [r for r in user.shipments if r.status == wanted]

    def filter_by_tag(self, tag: str, session_id: Optional[str]) -> List[ShipmentRecord]:
        user = self._require_user(session_id)
        with user.lock:
            return [r for r in user.shipments if r.has_tag(tag)]

    def search_packages(self, query: str, session_id: Optional[str]) -> List[ShipmentRecord]:
        """Case-insensitive match on tracking number, sender, carrier or tag."""
        user = self._require_user(session_id)
        with user.lock:
            return [r for r in user.shipments if r.matches(query)]

    def get_package(self, tracking_number: str, session_id: Optional[str]) -> ShipmentRecord:
        """
        Raises:
            ShipmentNotFoundError: If the user has no such shipment
        """
        user = self._require_user(session_id)
        return self._find_owned(user, tracking_number)

    def _find_owned(self, user: User, tracking_number: str) -> ShipmentRecord:
        record = user.find_shipment(tracking_number)
        if record is None:
            raise ShipmentNotFoundError(f"No shipment {tracking_number} for {user.username}")
        return record

    # ===== Mutations =====

    def update_package_status(
        self,
        tracking_number: str,
        status: Union[ShipmentStatus, str],
        session_id: Optional[str],
    ) -> ShipmentRecord:
        """
        Move one of the user's shipments to a new status and emit STATUS_UPDATE.

        Raises:
            ShipmentNotFoundError: If the user has no such shipment
            ValidationError: If status is not a ShipmentStatus
        """
        user = self._require_user(session_id)
        with user.lock:
            record = self._find_owned(user, tracking_number)
            event = record.update_status(status)

        logger.info(f"Shipment {tracking_number} status -> {event.status.value}")
        self._emit(user, EventType.STATUS_UPDATE, {
            "tracking_number": tracking_number,
            "status": event.status.value,
        })
        return record

    def add_tag(self, tracking_number: str, tag: str, session_id: Optional[str]) -> ShipmentRecord:
        user = self._require_user(session_id)
        with user.lock:
            record = self._find_owned(user, tracking_number)
            record.add_tag(tag)
        return record

    def remove_tag(self, tracking_number: str, tag: str, session_id: Optional[str]) -> ShipmentRecord:
        user = self._require_user(session_id)
        with user.lock:
            record = self._find_owned(user, tracking_number)
            record.remove_tag(tag)
        return record

    def update_customs_status(
        self, tracking_number: str, customs_status: str, session_id: Optional[str]
    ) -> ShipmentRecord:
        """
        Record customs progress on an international shipment.

        Raises:
            ShipmentNotFoundError: If the user has no such shipment
            CapabilityError: If the shipment's carrier is not international
        """
        user = self._require_user(session_id)
        with user.lock:
            record = self._find_owned(user, tracking_number)
            hours = record.update_customs_status(customs_status)
        logger.info(
            f"Shipment {tracking_number} customs status '{customs_status}', "
            f"~{hours}h clearance to {record.destination_country}"
        )
        return record

    def check_deliveries_tomorrow(self, session_id: Optional[str]) -> List[ShipmentRecord]:
        """Emit DELIVERY_TOMORROW for each undelivered shipment due tomorrow."""
        user = self._require_user(session_id)
        with user.lock:
            due = [
                r for r in user.shipments
                if r.status != ShipmentStatus.DELIVERED and self._is_due_tomorrow(r)
            ]
        for record in due:
            self._emit(user, EventType.DELIVERY_TOMORROW, self._delivery_tomorrow_payload(record))
        return due
