from __future__ import annotations

import logging
import threading
from collections import defaultdict
from datetime import date, datetime, timedelta
from typing import Callable, Optional

from ..common.datetime_utils import now_local
from ..common.validators import require_non_empty
from ..core.constants import DEFAULT_ACCURACY_CEILING_METERS, DEFAULT_HISTORY_LIMIT
from ..core.enums import AttendanceAction, AttendanceStatus, CheckInMethod, Role
from ..core.exceptions import (
    AlreadyCheckedIn,
    AuthorizationError,
    InvalidOrdering,
    NotFoundError,
    ValidationError,
)
from ..geo.model import GeoPoint
from ..tracking.model import TransitionEvent
from ..zones.registry import ZoneRegistry
from .factory import AttendanceStrategyFactory
from .model import AttendanceRecord, AttendanceStats, record_id_for
from .repository import AttendanceRepository

logger = logging.getLogger(__name__)


class AttendanceService:
    """Attendance state machine per (employee, day).

    NotCheckedIn -> CheckedIn -> CheckedOut. Absent and HalfDay are only set
    by an administrator or the end-of-day evaluator.
    """

    def __init__(
        self,
        attendance: AttendanceRepository,
        zones: ZoneRegistry,
        *,
        strategy_factory: AttendanceStrategyFactory | None = None,
        qr_token: str | None = None,
        accuracy_ceiling_m: float = DEFAULT_ACCURACY_CEILING_METERS,
        clock: Callable[[], datetime] = now_local,
    ):
        self._attendance = attendance
        self._zones = zones
        self._factory = strategy_factory or AttendanceStrategyFactory()
        self._qr_token = (qr_token or "").strip() or None
        self._accuracy_ceiling_m = float(accuracy_ceiling_m)
        self._clock = clock
        self._locks: defaultdict[str, threading.Lock] = defaultdict(threading.Lock)
        self._locks_guard = threading.Lock()

    def _employee_lock(self, employee_id: str) -> threading.Lock:
        with self._locks_guard:
            return self._locks[employee_id]

    def handle_transition(self, event: TransitionEvent) -> Optional[AttendanceRecord]:
        """Apply a confirmed enter/exit/dwell. Returns the mutated record, if any."""

        try:
            zone = self._zones.get(event.zone_id)
        except NotFoundError:
            logger.warning("Ignoring %s for unknown zone %s", event.kind.value, event.zone_id)
            return None

        work_date = event.occurred_at.date()
        with self._employee_lock(event.employee_id):
            record = self._attendance.get_for_employee_and_date(event.employee_id, work_date)
            decision = self._factory.for_event(event).decide(event=event, zone=zone, record=record)

            if decision.action == AttendanceAction.CHECK_IN:
                created = AttendanceRecord(
                    record_id=record_id_for(event.employee_id, work_date),
                    employee_id=event.employee_id,
                    organization_id=zone.organization_id,
                    work_date=work_date,
                    status=AttendanceStatus.CHECKED_IN,
                    check_in_method=CheckInMethod.AUTOMATIC,
                    check_in_at=event.occurred_at,
                    check_in_location=event.location,
                    zone_id=zone.zone_id,
                    inside_zone=True,
                    zone_verified=not event.low_confidence,
                    updated_at=self._clock(),
                )
                self._attendance.save(created)
                logger.info("Auto check-in %s at zone %s", event.employee_id, zone.zone_id)
                return created

            if decision.action == AttendanceAction.CHECK_OUT:
                logger.info("Auto check-out %s from zone %s", event.employee_id, zone.zone_id)
                return self._close(record, at=event.occurred_at, location=event.location, method=CheckInMethod.AUTOMATIC)

        logger.debug("No attendance change for %s %s: %s", event.employee_id, event.kind.value, decision.reason)
        return None

    def check_in(
        self,
        employee_id: str,
        organization_id: str,
        *,
        now: datetime | None = None,
        location: GeoPoint | None = None,
        accuracy_m: float | None = None,
        method: CheckInMethod = CheckInMethod.MANUAL,
    ) -> AttendanceRecord:
        """Manual check-in. Allowed anywhere; outside every zone it is simply not verified."""

        employee_id = require_non_empty(employee_id, "employee_id")
        organization_id = require_non_empty(organization_id, "organization_id")
        now = now or self._clock()
        today = now.date()

        zone = self._zones.resolve(location, organization_id, now) if location else None
        accurate = accuracy_m is None or float(accuracy_m) <= self._accuracy_ceiling_m

        with self._employee_lock(employee_id):
            existing = self._attendance.get_for_employee_and_date(employee_id, today)
            if existing is not None:
                raise AlreadyCheckedIn(f"Already has an attendance record today ({existing.status.value})")

            record = AttendanceRecord(
                record_id=record_id_for(employee_id, today),
                employee_id=employee_id,
                organization_id=organization_id,
                work_date=today,
                status=AttendanceStatus.CHECKED_IN,
                check_in_method=method,
                check_in_at=now,
                check_in_location=location,
                zone_id=zone.zone_id if zone else None,
                inside_zone=zone is not None,
                zone_verified=zone is not None and accurate,
                updated_at=self._clock(),
            )
            self._attendance.save(record)
        return record

    def check_in_qr(
        self,
        employee_id: str,
        organization_id: str,
        qr_code: str,
        *,
        now: datetime | None = None,
        location: GeoPoint | None = None,
        accuracy_m: float | None = None,
    ) -> AttendanceRecord:
        code = (qr_code or "").strip()
        if not code:
            raise ValidationError("QR code must not be empty")
        if self._qr_token is None or code != self._qr_token:
            raise ValidationError("QR code is not valid for check-in")
        return self.check_in(
            employee_id,
            organization_id,
            now=now,
            location=location,
            accuracy_m=accuracy_m,
            method=CheckInMethod.QR_CODE,
        )

    def check_out(
        self,
        employee_id: str,
        *,
        now: datetime | None = None,
        location: GeoPoint | None = None,
    ) -> AttendanceRecord:
        """Manual check-out. Idempotent: a repeat returns the stored record unchanged."""

        now = now or self._clock()
        with self._employee_lock(employee_id):
            record = self._attendance.get_for_employee_and_date(employee_id, now.date())
            if record is None:
                raise ValidationError("You have not checked in today")
            if record.status == AttendanceStatus.CHECKED_OUT:
                return record
            if record.status != AttendanceStatus.CHECKED_IN:
                raise ValidationError(f"Cannot check out from status {record.status.value}")
            return self._close(record, at=now, location=location, method=CheckInMethod.MANUAL)

    def admin_override(
        self,
        *,
        current_role: Role,
        admin_id: str,
        employee_id: str,
        organization_id: str,
        work_date: date,
        reason: str,
        status: AttendanceStatus | None = None,
        check_in_at: datetime | None = None,
        check_out_at: datetime | None = None,
    ) -> AttendanceRecord:
        """Force status/times, bypassing every precondition except time ordering."""

        if current_role != Role.ADMIN:
            raise AuthorizationError("Only administrators can override attendance")
        admin_id = require_non_empty(admin_id, "admin_id")
        employee_id = require_non_empty(employee_id, "employee_id")
        reason = require_non_empty(reason, "reason")

        with self._employee_lock(employee_id):
            record = self._attendance.get_for_employee_and_date(employee_id, work_date) or AttendanceRecord(
                record_id=record_id_for(employee_id, work_date),
                employee_id=employee_id,
                organization_id=organization_id,
                work_date=work_date,
                status=AttendanceStatus.NOT_CHECKED_IN,
            )
            new_in = check_in_at or record.check_in_at
            new_out = check_out_at or record.check_out_at
            if new_in and new_out and new_out < new_in:
                raise InvalidOrdering("Check-out time cannot be earlier than check-in time")

            updated = record.with_changes(
                status=status or record.status,
                check_in_at=new_in,
                check_out_at=new_out,
                manually_overridden=True,
                overridden_by=admin_id,
                override_reason=reason,
                updated_at=self._clock(),
            )
            self._attendance.save(updated)
        logger.info("Attendance %s overridden by %s: %s", updated.record_id, admin_id, reason)
        return updated

    def mark_absent(self, employee_id: str, organization_id: str, work_date: date) -> Optional[AttendanceRecord]:
        """End-of-day evaluation: no record by the end of the work window means absent."""

        employee_id = require_non_empty(employee_id, "employee_id")
        with self._employee_lock(employee_id):
            if self._attendance.get_for_employee_and_date(employee_id, work_date) is not None:
                return None
            record = AttendanceRecord(
                record_id=record_id_for(employee_id, work_date),
                employee_id=employee_id,
                organization_id=organization_id,
                work_date=work_date,
                status=AttendanceStatus.ABSENT,
                updated_at=self._clock(),
            )
            self._attendance.save(record)
        return record

    def get_today_record(self, employee_id: str, today: date | None = None) -> Optional[AttendanceRecord]:
        return self._attendance.get_for_employee_and_date(employee_id, today or self._clock().date())

    def get_history(
        self,
        employee_id: str,
        *,
        start_date: date | None = None,
        end_date: date | None = None,
        limit: int = DEFAULT_HISTORY_LIMIT,
    ):
        return self._attendance.list_for_employee(employee_id, start_date=start_date, end_date=end_date, limit=limit)

    def get_stats(self, employee_id: str, *, start_date: date, end_date: date) -> AttendanceStats:
        if end_date < start_date:
            raise ValidationError("end_date must not be before start_date")
        records = self.get_history(employee_id, start_date=start_date, end_date=end_date, limit=366)

        present = absent = half = 0
        total = timedelta(0)
        for r in records:
            if r.status in (AttendanceStatus.CHECKED_IN, AttendanceStatus.CHECKED_OUT, AttendanceStatus.ON_BREAK):
                present += 1
                if r.work_duration is not None:
                    total += r.work_duration
            elif r.status == AttendanceStatus.ABSENT:
                absent += 1
            elif r.status == AttendanceStatus.HALF_DAY:
                half += 1

        return AttendanceStats(
            total_days=len(records),
            present_days=present,
            absent_days=absent,
            half_days=half,
            total_work_time=total,
        )

    def _close(
        self,
        record: AttendanceRecord,
        *,
        at: datetime,
        location: GeoPoint | None,
        method: CheckInMethod,
    ) -> AttendanceRecord:
        if record.check_in_at is not None and at < record.check_in_at:
            raise InvalidOrdering(
                f"Check-out at {at.isoformat()} precedes check-in at {record.check_in_at.isoformat()}"
            )
        updated = record.with_changes(
            status=AttendanceStatus.CHECKED_OUT,
            check_out_at=at,
            check_out_method=method,
            check_out_location=location,
            updated_at=self._clock(),
        )
        self._attendance.save(updated)
        return updated
