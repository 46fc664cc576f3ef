"""
01_track_from_email.py - Track a package from a shipment notification
"""

from datetime import date, timedelta

from parceltrack import TrackingOrchestrator, EventType
from parceltrack.app import configure_logging


def on_event(event):
    tracking_number = event.data["tracking_number"]
    if event.event_type == EventType.NEW_PACKAGE:
        print(f"New package added: {tracking_number}")
    elif event.event_type == EventType.STATUS_UPDATE:
        print(f"Package {tracking_number} status updated to: {event.data['status']}")
    elif event.event_type == EventType.DELIVERY_TOMORROW:
        print(f"DELIVERY ALERT: Package {tracking_number} will be delivered tomorrow!")


def main():
    configure_logging("INFO")

    tracker = TrackingOrchestrator()
    tracker.subscribe(on_event)

    tracker.register_user("john_doe", "john@example.com", "securepassword")
    session_id = tracker.login("john_doe", "securepassword")

    tomorrow = (date.today() + timedelta(days=1)).isoformat()
    email = f"""
        From: Amazon.com
        Subject: Your package is on its way

        Tracking Number: 1Z999AA10123456784
        Carrier: UPS
        Expected Delivery: {tomorrow}

        Your recent order of "Wireless Headphones" has shipped.
    """

    record = tracker.extract_from_email(email, session_id)
    if record is None:
        print("No package could be extracted from the email.")
        return

    tracker.add_tag(record.tracking_number, "Gift", session_id)
    tracker.update_package_status(record.tracking_number, "Delivered", session_id)

    for pkg in tracker.get_packages_sorted(session_id):
        print(pkg.to_dict())

    tracker.logout(session_id)


if __name__ == "__main__":
    main()
