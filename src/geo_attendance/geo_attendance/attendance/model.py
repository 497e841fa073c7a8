from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date, datetime, timedelta
from typing import Any, Optional

from ..core.enums import AttendanceStatus, CheckInMethod
from ..core.exceptions import InvalidPayload
from ..geo.model import GeoPoint


def record_id_for(employee_id: str, work_date: date) -> str:
    """One document per (employee, day), stable across offline replays."""
    return f"{employee_id}_{work_date.isoformat()}"


def _dt(value: Any) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


def _point(lat: Any, lon: Any) -> Optional[GeoPoint]:
    if lat is None or lon is None:
        return None
    return GeoPoint(lat, lon)


@dataclass(frozen=True)
class AttendanceRecord:
    """Domain entity: one employee's attendance for one calendar day."""

    record_id: str
    employee_id: str
    organization_id: str
    work_date: date
    status: AttendanceStatus
    check_in_method: CheckInMethod = CheckInMethod.MANUAL
    check_in_at: Optional[datetime] = None
    check_out_at: Optional[datetime] = None
    check_out_method: Optional[CheckInMethod] = None
    check_in_location: Optional[GeoPoint] = None
    check_out_location: Optional[GeoPoint] = None
    # Zone at check-in time. Kept as history even if the zone is later deleted.
    zone_id: Optional[str] = None
    inside_zone: bool = False
    zone_verified: bool = False
    manually_overridden: bool = False
    overridden_by: Optional[str] = None
    override_reason: Optional[str] = None
    updated_at: Optional[datetime] = None

    @property
    def work_duration(self) -> Optional[timedelta]:
        """Only defined for a closed session; never measured against 'now'."""

        if self.check_in_at is None or self.check_out_at is None:
            return None
        return self.check_out_at - self.check_in_at

    @property
    def is_checked_in(self) -> bool:
        return self.status == AttendanceStatus.CHECKED_IN and self.check_in_at is not None and self.check_out_at is None

    def with_changes(self, **changes) -> AttendanceRecord:
        return replace(self, **changes)

    def to_document(self) -> dict[str, Any]:
        return {
            "id": self.record_id,
            "employeeId": self.employee_id,
            "companyId": self.organization_id,
            "date": self.work_date.isoformat(),
            "status": self.status.value,
            "checkInMethod": self.check_in_method.value,
            "checkInTime": self.check_in_at.isoformat() if self.check_in_at else None,
            "checkOutTime": self.check_out_at.isoformat() if self.check_out_at else None,
            "checkOutMethod": self.check_out_method.value if self.check_out_method else None,
            "checkInLatitude": self.check_in_location.latitude if self.check_in_location else None,
            "checkInLongitude": self.check_in_location.longitude if self.check_in_location else None,
            "checkOutLatitude": self.check_out_location.latitude if self.check_out_location else None,
            "checkOutLongitude": self.check_out_location.longitude if self.check_out_location else None,
            "geofenceId": self.zone_id,
            "isInsideGeofence": self.inside_zone,
            "isGeofenceVerified": self.zone_verified,
            "isManuallyOverridden": self.manually_overridden,
            "overriddenBy": self.overridden_by,
            "overrideReason": self.override_reason,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }

    @classmethod
    def from_document(cls, data: dict[str, Any]) -> AttendanceRecord:
        try:
            return cls(
                record_id=str(data["id"]),
                employee_id=str(data["employeeId"]),
                organization_id=str(data.get("companyId") or ""),
                work_date=date.fromisoformat(data["date"]),
                status=AttendanceStatus(data["status"]),
                check_in_method=CheckInMethod(data.get("checkInMethod") or CheckInMethod.MANUAL.value),
                check_in_at=_dt(data.get("checkInTime")),
                check_out_at=_dt(data.get("checkOutTime")),
                check_out_method=CheckInMethod(data["checkOutMethod"]) if data.get("checkOutMethod") else None,
                check_in_location=_point(data.get("checkInLatitude"), data.get("checkInLongitude")),
                check_out_location=_point(data.get("checkOutLatitude"), data.get("checkOutLongitude")),
                zone_id=data.get("geofenceId"),
                inside_zone=bool(data.get("isInsideGeofence", False)),
                zone_verified=bool(data.get("isGeofenceVerified", False)),
                manually_overridden=bool(data.get("isManuallyOverridden", False)),
                overridden_by=data.get("overriddenBy"),
                override_reason=data.get("overrideReason"),
                updated_at=_dt(data.get("updatedAt")),
            )
        except (KeyError, ValueError) as e:
            raise InvalidPayload(f"Corrupt attendance document {data.get('id')!r}: {e}")


@dataclass(frozen=True)
class AttendanceStats:
    """Aggregates over a date range (read-model for reports)."""

    total_days: int
    present_days: int
    absent_days: int
    half_days: int
    total_work_time: timedelta

    @property
    def attendance_percentage(self) -> float:
        return (self.present_days / self.total_days) * 100 if self.total_days else 0.0

    @property
    def average_work_time(self) -> timedelta:
        if not self.present_days:
            return timedelta(0)
        return self.total_work_time / self.present_days
