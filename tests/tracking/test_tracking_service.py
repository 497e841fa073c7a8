from datetime import timedelta, timezone

import pytest

from src.geo_attendance.geo_attendance.core.enums import AttendanceStatus, CheckInMethod, MembershipPhase, TransitionKind
from src.geo_attendance.geo_attendance.core.exceptions import (
    InvalidPayload,
    NotFoundError,
    PermissionUnavailable,
    ValidationError,
)
from src.geo_attendance.geo_attendance.tracking.detector import TransitionDetector
from src.geo_attendance.geo_attendance.tracking.model import PositionSample
from src.geo_attendance.geo_attendance.tracking.service import TrackingService


class ListSource:
    def __init__(self, samples, *, denied=False):
        self.samples = list(samples)
        self.denied = denied
        self.started_with = None
        self.stopped = False

    def start(self, interval_seconds):
        if self.denied:
            raise PermissionUnavailable("location permission denied")
        self.started_with = interval_seconds

    def stop(self):
        self.stopped = True

    def __iter__(self):
        return iter(self.samples)


@pytest.fixture()
def office(container, make_zone):
    return container.zone_registry.upsert(make_zone("office"))


def test_confirmed_enter_checks_in_automatically(container, office, make_sample, fixed_now):
    tracking = container.tracking_service
    tracking.start("emp-1", "org-1")

    tracking.ingest("emp-1", make_sample(fixed_now))
    events = tracking.ingest("emp-1", make_sample(fixed_now + timedelta(seconds=30)))
    tracking.drain()

    assert [e.kind for e in events] == [TransitionKind.ENTER]
    record = container.attendance_service.get_today_record("emp-1", fixed_now.date())
    assert record.status == AttendanceStatus.CHECKED_IN
    assert record.check_in_method == CheckInMethod.AUTOMATIC
    assert record.check_in_at == fixed_now + timedelta(seconds=30)
    assert record.zone_id == "office"
    assert record.zone_verified is True


def test_out_of_order_sample_is_dropped(container, office, make_sample, fixed_now, outside_point):
    tracking = container.tracking_service
    tracking.start("emp-1", "org-1")
    tracking.ingest("emp-1", make_sample(fixed_now + timedelta(seconds=60), outside_point))

    assert tracking.ingest("emp-1", make_sample(fixed_now)) == []
    state = tracking.membership("emp-1")
    assert state.phase == MembershipPhase.OUTSIDE
    assert state.last_sample_at == fixed_now + timedelta(seconds=60)


def test_sample_for_unknown_subject_is_rejected(container, make_sample, fixed_now):
    with pytest.raises(NotFoundError):
        container.tracking_service.ingest("ghost", make_sample(fixed_now))


def test_evaluation_failure_leaves_state_unchanged(container, office, make_sample, fixed_now):
    class BrokenDetector(TransitionDetector):
        def evaluate(self, *args, **kwargs):
            raise RuntimeError("boom")

    tracking = TrackingService(container.zone_registry, BrokenDetector(), on_event=lambda e: None)
    tracking.start("emp-1", "org-1")
    try:
        assert tracking.ingest("emp-1", make_sample(fixed_now)) == []
        assert tracking.membership("emp-1").last_sample_at is None
    finally:
        tracking.shutdown()


def test_failing_event_handler_does_not_stop_the_stream(container, office, make_sample, fixed_now):
    seen = []

    def handler(event):
        seen.append(event.kind)
        raise RuntimeError("attendance store exploded")

    tracking = TrackingService(container.zone_registry, container.detector, on_event=handler)
    tracking.start("emp-1", "org-1")
    try:
        for s in (0, 30, 60):
            tracking.ingest("emp-1", make_sample(fixed_now + timedelta(seconds=s)))
        tracking.drain()
    finally:
        tracking.shutdown()

    assert seen == [TransitionKind.ENTER]
    assert tracking.membership("emp-1").phase == MembershipPhase.INSIDE


def test_samples_are_written_to_location_log(container, store, office, make_sample, fixed_now):
    tracking = container.tracking_service
    tracking.start("emp-1", "org-1")
    tracking.ingest("emp-1", make_sample(fixed_now))
    tracking.drain()

    docs = store.query("locations", {"employeeId": "emp-1"})
    assert len(docs) == 1
    assert docs[0]["timestamp"] == fixed_now.isoformat()


def test_native_event_is_validated_and_delivered(container, office, fixed_now):
    tracking = container.tracking_service
    with pytest.raises(InvalidPayload):
        tracking.handle_native_event({"geofenceId": "office", "employeeId": "emp-1", "type": "teleport"})

    event = tracking.handle_native_event(
        {
            "geofenceId": "office",
            "employeeId": "emp-1",
            "type": "enter",
            "timestamp": fixed_now.isoformat(),
            "latitude": 0.0,
            "longitude": 0.0,
        }
    )
    tracking.drain()

    assert event.kind == TransitionKind.ENTER
    assert container.attendance_service.get_today_record("emp-1", fixed_now.date()).status == AttendanceStatus.CHECKED_IN


def test_track_consumes_source_until_exhausted(container, office, make_sample, fixed_now):
    source = ListSource([make_sample(fixed_now + timedelta(seconds=s)) for s in (0, 30, 60)])

    processed = container.tracking_service.track("emp-1", "org-1", source, interval_seconds=30)

    assert processed == 3
    assert source.started_with == 30
    assert source.stopped is True
    assert container.tracking_service.membership("emp-1").phase == MembershipPhase.INSIDE


def test_track_rejects_too_frequent_sampling(container):
    with pytest.raises(ValidationError):
        container.tracking_service.track("emp-1", "org-1", ListSource([]), interval_seconds=5)


def test_denied_position_permission_degrades_status(container):
    processed = container.tracking_service.track("emp-1", "org-1", ListSource([], denied=True))

    assert processed == 0
    assert container.tracking_service.status().permission_degraded is True


def test_status_reports_pending_writes(container, store, office, make_sample, fixed_now):
    store.offline = True
    tracking = container.tracking_service
    tracking.start("emp-1", "org-1")
    tracking.ingest("emp-1", make_sample(fixed_now))
    tracking.drain()

    status = tracking.status()
    assert status.tracking is True
    assert status.pending_writes == 1
    assert status.last_sync_at is None


def test_shutdown_halts_ingestion(container, office, make_sample, fixed_now):
    tracking = container.tracking_service
    tracking.start("emp-1", "org-1")
    tracking.shutdown()

    assert tracking.ingest("emp-1", make_sample(fixed_now)) == []
    with pytest.raises(ValidationError):
        tracking.start("emp-2", "org-1")


def test_stop_halts_only_that_employee(container, office, make_sample, fixed_now):
    tracking = container.tracking_service
    tracking.start("emp-1", "org-1")
    tracking.start("emp-2", "org-1")

    assert tracking.stop("emp-1") is True
    assert tracking.stop("emp-1") is False

    with pytest.raises(NotFoundError):
        tracking.ingest("emp-1", make_sample(fixed_now))
    tracking.ingest("emp-2", make_sample(fixed_now))
    assert tracking.membership("emp-2").last_sample_at == fixed_now


def test_stop_ends_the_running_track_loop(container, office, make_sample, fixed_now):
    tracking = container.tracking_service

    class StoppingSource(ListSource):
        def __iter__(self):
            for i, sample in enumerate(self.samples):
                if i == 1:
                    tracking.stop("emp-1")
                yield sample

    source = StoppingSource([make_sample(fixed_now + timedelta(seconds=s)) for s in (0, 30, 60)])

    assert tracking.track("emp-1", "org-1", source, interval_seconds=30) == 1
    assert source.stopped is True
    tracking.start("emp-2", "org-1")


def test_mixed_timezone_samples_do_not_break_the_stream(container, office, fixed_now):
    aware = fixed_now.astimezone(timezone.utc) + timedelta(seconds=30)
    payloads = [
        {"latitude": 0.0, "longitude": 0.0, "accuracy": 5, "capturedAt": fixed_now.isoformat()},
        {"latitude": 0.0, "longitude": 0.0, "accuracy": 5, "capturedAt": aware.isoformat()},
        {"latitude": 0.0, "longitude": 0.0, "accuracy": 5, "capturedAt": (fixed_now + timedelta(seconds=60)).isoformat()},
    ]
    samples = [PositionSample.from_payload(p) for p in payloads]

    assert samples[1].captured_at.tzinfo is None
    assert samples[1].captured_at == fixed_now + timedelta(seconds=30)

    processed = container.tracking_service.track("emp-1", "org-1", ListSource(samples), interval_seconds=30)

    assert processed == 3
    state = container.tracking_service.membership("emp-1")
    assert state.phase == MembershipPhase.INSIDE
    assert state.last_sample_at == fixed_now + timedelta(seconds=60)


def test_aware_sample_built_in_code_is_isolated(container, office, make_sample, fixed_now):
    tracking = container.tracking_service
    tracking.start("emp-1", "org-1")
    tracking.ingest("emp-1", make_sample(fixed_now))

    aware = make_sample(fixed_now.replace(tzinfo=timezone.utc) + timedelta(seconds=30))
    assert tracking.ingest("emp-1", aware) == []
    assert tracking.membership("emp-1").last_sample_at == fixed_now
