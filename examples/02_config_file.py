"""
02_config_file.py - Build a tracker from parceltrack.yaml
"""

from pathlib import Path

from parceltrack import create_tracker


def main():
    tracker = create_tracker(str(Path(__file__).with_name("parceltrack.yaml")))
    tracker.subscribe(lambda event: print(event.event_type.value, event.data["tracking_number"]))

    tracker.register_user("ops", "ops@example.com", "change-me")
    session_id = tracker.login("ops", "change-me")

    email = """
        From: Tokyo Electronics
        Carrier: DHLINTL
        Tracking Number: DHL1234567X
        Expected Delivery: 2030-05-02
        Origin Country: JP
        Destination Country: UK
        Your order of "Camera Lens" is on its way.
    """
    record = tracker.extract_from_email(email, session_id)
    tracker.update_customs_status(record.tracking_number, "Awaiting clearance", session_id)
    print(f"Customs clearance estimate: {record.estimated_customs_hours}h")


if __name__ == "__main__":
    main()
