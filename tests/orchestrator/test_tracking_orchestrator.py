"""Tests for parceltrack.orchestrator.TrackingOrchestrator

Tests cover:
- Extraction into a user's shipments, with NEW_PACKAGE / DELIVERY_TOMORROW events
- Session requirements and per-user ownership
- Sorting, filtering and search
- Status updates, tags and customs status
- Notification preferences
"""

import threading
from datetime import date, datetime

import pytest

from parceltrack import (
    AuthenticationError,
    AuthenticationRequiredError,
    CapabilityError,
    DuplicateUserError,
    EventType,
    ShipmentNotFoundError,
    ShipmentStatus,
    TrackingOrchestrator,
    ValidationError,
)

from conftest import (
    DHL_INTL_TRACKING,
    DHL_TRACKING,
    FEDEX_TRACKING,
    TEST_HASH_ROUNDS,
    UPS_TRACKING,
    FakeClock,
    make_email,
    tomorrow_iso,
)


def _login_as(tracker, username, password="pw"):
    tracker.register_user(username, f"{username}@example.com", password)
    return tracker.login(username, password)


class TestExtractFromEmail:
    def test_scenario_new_package(self, tracker, session_id, events):
        record = tracker.extract_from_email(make_email(delivery="2024-02-20"), session_id)

        assert record is not None
        assert record.tracking_number == UPS_TRACKING
        assert record.status == ShipmentStatus.IN_TRANSIT
        assert UPS_TRACKING in record.tracking_link
        assert record.sender == "Amazon.com"
        assert record.description == "Wireless Headphones"

        assert [e.event_type for e in events] == [EventType.NEW_PACKAGE]
        assert events[0].data["tracking_number"] == UPS_TRACKING
        assert events[0].data["shipment"] is record
        assert events[0].username == "alice"

    def test_scenario_delivery_tomorrow(self, tracker, session_id, events):
        tracker.extract_from_email(make_email(delivery=tomorrow_iso()), session_id)

        assert [e.event_type for e in events] == [
            EventType.NEW_PACKAGE,
            EventType.DELIVERY_TOMORROW,
        ]
        assert events[1].data["estimated_delivery"] == tomorrow_iso()

    def test_default_delivery_date_is_tomorrow(self):
        clock = FakeClock(datetime(2024, 2, 18, 9, 0))
        tracker = TrackingOrchestrator(hash_rounds=TEST_HASH_ROUNDS, clock=clock)
        received = []
        tracker.subscribe(received.append)
        sid = _login_as(tracker, "carol")

        record = tracker.extract_from_email(make_email(delivery=None), sid)

        assert record.estimated_delivery == date(2024, 2, 19)
        assert EventType.DELIVERY_TOMORROW in [e.event_type for e in received]

    def test_scenario_no_session(self, tracker, events):
        with pytest.raises(AuthenticationRequiredError):
            tracker.extract_from_email(make_email(), None)
        with pytest.raises(AuthenticationRequiredError):
            tracker.extract_from_email(make_email(), "bogus-session")
        assert events == []

    def test_unparseable_returns_none(self, tracker, session_id, events):
        assert tracker.extract_from_email("hello there", session_id) is None
        assert tracker.extract_from_email(make_email(carrier="USPS"), session_id) is None
        assert tracker.get_packages_sorted(session_id) == []
        assert events == []

    def test_same_tracking_number_not_duplicated(self, tracker, session_id, events):
        first = tracker.extract_from_email(make_email(), session_id)
        second = tracker.extract_from_email(make_email(sender="Someone else"), session_id)
        assert second is first
        assert len(tracker.get_packages_sorted(session_id)) == 1
        assert len(events) == 1

    def test_default_tags_applied(self, tracker, session_id):
        tracker.get_preferences(session_id).add_default_tag("Home")
        record = tracker.extract_from_email(make_email(), session_id)
        assert record.tags == ("home",)


class TestUsersAndSessions:
    def test_scenario_duplicate_user(self, tracker):
        tracker.register_user("alice", "alice@example.com", "s3cret")
        with pytest.raises(DuplicateUserError):
            tracker.register_user("alice", "alice2@example.com", "other")

    def test_scenario_bad_password_keeps_other_sessions(self, tracker):
        tracker.register_user("alice", "alice@example.com", "s3cret")
        bob_session = _login_as(tracker, "bob")

        with pytest.raises(AuthenticationError):
            tracker.login("alice", "wrong")

        assert tracker.get_packages_sorted(bob_session) == []

    def test_logout_ends_access(self, tracker, session_id):
        tracker.logout(session_id)
        tracker.logout(session_id)
        with pytest.raises(AuthenticationRequiredError):
            tracker.get_packages_sorted(session_id)

    def test_session_ttl(self):
        clock = FakeClock()
        tracker = TrackingOrchestrator(
            session_ttl=300, hash_rounds=TEST_HASH_ROUNDS, clock=clock,
        )
        sid = _login_as(tracker, "alice")
        clock.advance(minutes=5)
        with pytest.raises(AuthenticationRequiredError):
            tracker.extract_from_email(make_email(), sid)


class TestOwnership:
    def test_shipments_are_per_user(self, tracker, session_id):
        bob = _login_as(tracker, "bob")
        tracker.extract_from_email(make_email(), session_id)

        assert tracker.get_packages_sorted(bob) == []
        assert tracker.search_packages("amazon", bob) == []

    def test_cannot_update_other_users_shipment(self, tracker, session_id, events):
        bob = _login_as(tracker, "bob")
        tracker.extract_from_email(make_email(), session_id)
        events.clear()

        with pytest.raises(ShipmentNotFoundError):
            tracker.update_package_status(UPS_TRACKING, "Delivered", bob)
        assert tracker.get_package(UPS_TRACKING, session_id).status == ShipmentStatus.IN_TRANSIT
        assert events == []

    def test_same_tracking_number_for_two_users(self, tracker, session_id):
        bob = _login_as(tracker, "bob")
        mine = tracker.extract_from_email(make_email(), session_id)
        theirs = tracker.extract_from_email(make_email(), bob)
        assert mine is not theirs


class TestQueries:
    @pytest.fixture
    def loaded(self, tracker, session_id):
        tracker.extract_from_email(make_email(tracking=UPS_TRACKING, delivery="2024-03-05"), session_id)
        tracker.extract_from_email(
            make_email(carrier="FEDEX", tracking=FEDEX_TRACKING, sender="Best Buy", delivery="2024-03-01"),
            session_id,
        )
        tracker.extract_from_email(
            make_email(carrier="DHL", tracking=DHL_TRACKING, sender="Etsy", delivery="2024-03-05"),
            session_id,
        )
        return session_id

    def test_sorted_by_delivery_stable(self, tracker, loaded):
        packages = tracker.get_packages_sorted(loaded)
        assert [p.tracking_number for p in packages] == [
            FEDEX_TRACKING,
            UPS_TRACKING,
            DHL_TRACKING,
        ]
        dates = [p.estimated_delivery for p in packages]
        assert dates == sorted(dates)

    def test_sort_does_not_reorder_owned_collection(self, tracker, loaded):
        tracker.get_packages_sorted(loaded)
        assert tracker.search_packages("", loaded)[0].tracking_number == UPS_TRACKING

    def test_filter_by_status(self, tracker, loaded):
        tracker.update_package_status(DHL_TRACKING, "Delivered", loaded)
        delivered = tracker.filter_by_status(ShipmentStatus.DELIVERED, loaded)
        assert [p.tracking_number for p in delivered] == [DHL_TRACKING]
        assert len(tracker.filter_by_status("In Transit", loaded)) == 2

    def test_filter_by_invalid_status(self, tracker, loaded):
        with pytest.raises(ValidationError):
            tracker.filter_by_status("Lost", loaded)

    @pytest.mark.parametrize("query,expected", [
        ("best", [FEDEX_TRACKING]),
        ("FEDEX", [FEDEX_TRACKING]),
        ("dhl", [DHL_TRACKING]),
        ("1z999aa", [UPS_TRACKING]),
        ("nothing-matches", []),
    ])
    def test_search(self, tracker, loaded, query, expected):
        results = tracker.search_packages(query, loaded)
        assert [p.tracking_number for p in results] == expected

    def test_search_by_tag(self, tracker, loaded):
        tracker.add_tag(UPS_TRACKING, "Birthday", loaded)
        results = tracker.search_packages("birth", loaded)
        assert [p.tracking_number for p in results] == [UPS_TRACKING]

    def test_filter_by_tag(self, tracker, loaded):
        tracker.add_tag(FEDEX_TRACKING, "Work", loaded)
        tracker.add_tag(DHL_TRACKING, "work", loaded)
        results = tracker.filter_by_tag("WORK", loaded)
        assert [p.tracking_number for p in results] == [FEDEX_TRACKING, DHL_TRACKING]

    def test_get_package_unknown(self, tracker, loaded):
        with pytest.raises(ShipmentNotFoundError):
            tracker.get_package("000000000000", loaded)

    def test_queries_require_session(self, tracker):
        with pytest.raises(AuthenticationRequiredError):
            tracker.search_packages("x", None)
        with pytest.raises(AuthenticationRequiredError):
            tracker.filter_by_status("Delivered", None)


class TestMutations:
    def test_update_status_emits_event(self, tracker, session_id, events):
        tracker.extract_from_email(make_email(), session_id)
        events.clear()

        record = tracker.update_package_status(UPS_TRACKING, "Out for Delivery", session_id)

        assert record.status == ShipmentStatus.OUT_FOR_DELIVERY
        assert len(record.history) == 1
        assert len(events) == 1
        assert events[0].event_type == EventType.STATUS_UPDATE
        assert events[0].data == {
            "tracking_number": UPS_TRACKING,
            "status": "Out for Delivery",
        }

    def test_update_invalid_status_emits_nothing(self, tracker, session_id, events):
        tracker.extract_from_email(make_email(), session_id)
        events.clear()
        with pytest.raises(ValidationError):
            tracker.update_package_status(UPS_TRACKING, "Teleported", session_id)
        assert events == []

    def test_add_and_remove_tag(self, tracker, session_id):
        tracker.extract_from_email(make_email(), session_id)
        tracker.add_tag(UPS_TRACKING, "Gift", session_id)
        record = tracker.add_tag(UPS_TRACKING, "gift", session_id)
        assert record.tags == ("gift",)
        record = tracker.remove_tag(UPS_TRACKING, "GIFT", session_id)
        assert record.tags == ()

    def test_customs_status(self, tracker, session_id):
        tracker.extract_from_email(
            make_email(carrier="DHLINTL", tracking=DHL_INTL_TRACKING, destination="JP"),
            session_id,
        )
        record = tracker.update_customs_status(DHL_INTL_TRACKING, "In clearance", session_id)
        assert record.estimated_customs_hours == 72

    def test_customs_status_needs_international_carrier(self, tracker, session_id):
        tracker.extract_from_email(make_email(), session_id)
        with pytest.raises(CapabilityError):
            tracker.update_customs_status(UPS_TRACKING, "In clearance", session_id)

    def test_concurrent_status_updates_keep_history(self, tracker, session_id):
        tracker.extract_from_email(make_email(), session_id)
        statuses = list(ShipmentStatus)

        def worker():
            for status in statuses:
                tracker.update_package_status(UPS_TRACKING, status, session_id)

        threads = [threading.Thread(target=worker) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        history = tracker.get_package(UPS_TRACKING, session_id).history
        assert len(history) == 4 * len(statuses)
        stamps = [e.timestamp for e in history]
        assert stamps == sorted(stamps)


class TestDeliveryAlerts:
    def test_check_deliveries_tomorrow(self, tracker, session_id, events):
        tracker.extract_from_email(make_email(delivery=tomorrow_iso()), session_id)
        tracker.extract_from_email(
            make_email(carrier="FEDEX", tracking=FEDEX_TRACKING, delivery="2030-01-01"),
            session_id,
        )
        events.clear()

        due = tracker.check_deliveries_tomorrow(session_id)

        assert [r.tracking_number for r in due] == [UPS_TRACKING]
        assert [e.event_type for e in events] == [EventType.DELIVERY_TOMORROW]

    def test_delivered_shipments_skipped(self, tracker, session_id, events):
        tracker.extract_from_email(make_email(delivery=tomorrow_iso()), session_id)
        tracker.update_package_status(UPS_TRACKING, "Delivered", session_id)
        events.clear()
        assert tracker.check_deliveries_tomorrow(session_id) == []
        assert events == []


class TestNotificationPreferences:
    def test_disabled_notifications_emit_nothing(self, tracker, session_id, events):
        tracker.get_preferences(session_id).toggle_notifications()
        record = tracker.extract_from_email(make_email(delivery=tomorrow_iso()), session_id)
        tracker.update_package_status(record.tracking_number, "Delivered", session_id)
        assert record.status == ShipmentStatus.DELIVERED
        assert events == []

    def test_failing_handler_does_not_block_others(self, tracker, session_id):
        received = []

        def broken(event):
            raise RuntimeError("handler down")

        tracker.subscribe(broken)
        tracker.subscribe(received.append)
        record = tracker.extract_from_email(make_email(), session_id)

        assert record is not None
        assert [e.event_type for e in received] == [EventType.NEW_PACKAGE]

    def test_fail_fast_handlers(self):
        tracker = TrackingOrchestrator(
            raise_handler_errors=True, hash_rounds=TEST_HASH_ROUNDS,
        )
        sid = _login_as(tracker, "alice")

        def broken(event):
            raise RuntimeError("handler down")

        tracker.subscribe(broken)
        with pytest.raises(RuntimeError):
            tracker.extract_from_email(make_email(), sid)
        # The record was attached before the event was published
        assert len(tracker.get_packages_sorted(sid)) == 1


class TestSharedClock:
    def test_event_and_history_timestamps_agree(self):
        clock = FakeClock(datetime(2024, 2, 18, 9, 0))
        tracker = TrackingOrchestrator(hash_rounds=TEST_HASH_ROUNDS, clock=clock)
        received = []
        tracker.subscribe(received.append)
        sid = _login_as(tracker, "dave")

        record = tracker.extract_from_email(make_email(delivery="2024-03-01"), sid)
        clock.advance(hours=2)
        tracker.update_package_status(record.tracking_number, "Delayed", sid)

        assert received[0].timestamp == "2024-02-18T09:00:00"
        assert received[-1].timestamp == record.history[-1].timestamp.isoformat()
        assert received[-1].timestamp == "2024-02-18T11:00:00"

    def test_registered_password_is_bcrypt(self):
        tracker = TrackingOrchestrator(hash_rounds=TEST_HASH_ROUNDS)
        user = tracker.register_user("erin", "erin@example.com", "s3cret")
        assert user.password_hash.startswith("$2")
        assert "s3cret" not in user.password_hash
