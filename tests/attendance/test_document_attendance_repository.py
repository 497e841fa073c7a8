import pytest

from src.geo_attendance.geo_attendance.attendance.document_attendance_repository import DocumentAttendanceRepository
from src.geo_attendance.geo_attendance.attendance.model import AttendanceRecord, record_id_for
from src.geo_attendance.geo_attendance.core.enums import AttendanceStatus


def record(employee_id, work_date):
    return AttendanceRecord(
        record_id=record_id_for(employee_id, work_date),
        employee_id=employee_id,
        organization_id="org-1",
        work_date=work_date,
        status=AttendanceStatus.CHECKED_IN,
    )


def test_snapshot_is_bounded_but_keeps_queued_records(container, store, fixed_now):
    repo = DocumentAttendanceRepository(store, container.writer, snapshot_size=2)
    today = fixed_now.date()

    store.offline = True
    for employee_id in ("emp-1", "emp-2", "emp-3"):
        repo.save(record(employee_id, today))
    assert len(repo.snapshot_ids) == 3

    store.offline = False
    container.sync_queue.flush()
    repo.save(record("emp-4", today))

    assert repo.snapshot_ids == [record_id_for("emp-3", today), record_id_for("emp-4", today)]

    store.offline = True
    assert repo.get_for_employee_and_date("emp-4", today).status == AttendanceStatus.CHECKED_IN
    assert repo.get_for_employee_and_date("emp-1", today) is None


def test_snapshot_size_must_be_positive(container, store):
    with pytest.raises(ValueError):
        DocumentAttendanceRepository(store, container.writer, snapshot_size=0)
