"""Example: drive the tracking pipeline without Flask.

Replays a short walk into the office zone and prints the resulting attendance
record. Needs a reachable MySQL configured through the usual settings.
"""

import importlib
from datetime import datetime, timedelta

from dotenv import load_dotenv

from config import get_settings_module

from src.geo_attendance.geo_attendance.container import build_container
from src.geo_attendance.geo_attendance.geo.model import GeoPoint
from src.geo_attendance.geo_attendance.tracking.model import PositionSample
from src.geo_attendance.geo_attendance.zones.model import Zone


def main():
    load_dotenv(override=False)
    settings = importlib.import_module(get_settings_module())
    container = build_container(settings=settings)

    office = GeoPoint(10.7769, 106.7009)
    container.zone_registry.upsert(
        Zone(zone_id="demo-office", organization_id="demo-org", name="Demo office", center=office, radius_m=120)
    )

    tracking = container.tracking_service
    tracking.start("demo-employee", "demo-org")
    start = datetime.now()
    for seconds in (0, 30, 60):
        sample = PositionSample(
            latitude=office.latitude,
            longitude=office.longitude,
            horizontal_accuracy_m=15,
            captured_at=start + timedelta(seconds=seconds),
        )
        for event in tracking.ingest("demo-employee", sample):
            print(event.kind.value, event.zone_id, event.occurred_at.isoformat())

    tracking.drain()
    print(container.attendance_service.get_today_record("demo-employee", start.date()))
    container.shutdown()


if __name__ == "__main__":
    main()
