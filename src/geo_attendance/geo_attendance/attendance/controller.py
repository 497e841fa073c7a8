from __future__ import annotations

from datetime import date, timedelta

from flask import Flask, request

from ..common.datetime_utils import parse_iso_date, parse_iso_datetime
from ..common.http import (
    admin_required,
    current_organization_id,
    current_role,
    current_user_id,
    json_body,
    json_errors,
    location_from,
    login_required,
    ok,
    optional_float,
)
from ..container import Container
from ..core.constants import DEFAULT_HISTORY_LIMIT
from ..core.enums import AttendanceStatus
from ..core.exceptions import ValidationError


def _date_arg(value: str | None, field_name: str) -> date | None:
    if not value:
        return None
    try:
        return parse_iso_date(value)
    except ValueError:
        raise ValidationError(f"{field_name} must be YYYY-MM-DD")


def register(app: Flask, container: Container) -> None:
    attendance = container.attendance_service

    @app.route("/api/attendance/check-in", methods=["POST"], endpoint="api_check_in")
    @login_required
    @json_errors
    def api_check_in():
        data = json_body()
        record = attendance.check_in(
            current_user_id(),
            current_organization_id(),
            location=location_from(data),
            accuracy_m=optional_float(data, "accuracy"),
        )
        return ok(201, message="Checked in", record=record.to_document())

    @app.route("/api/attendance/check-in/qr", methods=["POST"], endpoint="api_check_in_qr")
    @login_required
    @json_errors
    def api_check_in_qr():
        data = json_body()
        record = attendance.check_in_qr(
            current_user_id(),
            current_organization_id(),
            str(data.get("qr_code") or data.get("qrCode") or ""),
            location=location_from(data),
            accuracy_m=optional_float(data, "accuracy"),
        )
        return ok(201, message="Checked in with QR code", record=record.to_document())

    @app.route("/api/attendance/check-out", methods=["POST"], endpoint="api_check_out")
    @login_required
    @json_errors
    def api_check_out():
        record = attendance.check_out(current_user_id(), location=location_from(json_body()))
        return ok(message="Checked out", record=record.to_document())

    @app.route("/api/attendance/today", methods=["GET"], endpoint="api_today")
    @login_required
    @json_errors
    def api_today():
        record = attendance.get_today_record(current_user_id())
        return ok(record=record.to_document() if record else None)

    @app.route("/api/attendance/history", methods=["GET"], endpoint="api_history")
    @login_required
    @json_errors
    def api_history():
        try:
            limit = int(request.args.get("limit", DEFAULT_HISTORY_LIMIT))
        except ValueError:
            raise ValidationError("limit must be an integer")
        records = attendance.get_history(
            current_user_id(),
            start_date=_date_arg(request.args.get("start"), "start"),
            end_date=_date_arg(request.args.get("end"), "end"),
            limit=limit,
        )
        return ok(records=[r.to_document() for r in records])

    @app.route("/api/attendance/stats", methods=["GET"], endpoint="api_stats")
    @login_required
    @json_errors
    def api_stats():
        today = date.today()
        start = _date_arg(request.args.get("start"), "start") or today.replace(day=1)
        end = _date_arg(request.args.get("end"), "end") or today
        stats = attendance.get_stats(current_user_id(), start_date=start, end_date=end)
        return ok(
            stats={
                "totalDays": stats.total_days,
                "presentDays": stats.present_days,
                "absentDays": stats.absent_days,
                "halfDays": stats.half_days,
                "attendancePercentage": round(stats.attendance_percentage, 2),
                "totalWorkSeconds": int(stats.total_work_time / timedelta(seconds=1)),
                "averageWorkSeconds": int(stats.average_work_time / timedelta(seconds=1)),
            }
        )

    @app.route("/api/attendance/override", methods=["POST"], endpoint="api_override")
    @admin_required
    @json_errors
    def api_override():
        data = json_body()
        work_date = _date_arg(data.get("date"), "date")
        if work_date is None:
            raise ValidationError("date is required")
        try:
            status = AttendanceStatus(data["status"]) if data.get("status") else None
        except ValueError:
            raise ValidationError(f"Unknown status {data.get('status')!r}")
        record = attendance.admin_override(
            current_role=current_role(),
            admin_id=current_user_id(),
            employee_id=str(data.get("employeeId") or ""),
            organization_id=current_organization_id(),
            work_date=work_date,
            reason=str(data.get("reason") or ""),
            status=status,
            check_in_at=parse_iso_datetime(data["checkInTime"]) if data.get("checkInTime") else None,
            check_out_at=parse_iso_datetime(data["checkOutTime"]) if data.get("checkOutTime") else None,
        )
        return ok(message="Attendance overridden", record=record.to_document())

    @app.route("/api/attendance/absent", methods=["POST"], endpoint="api_mark_absent")
    @admin_required
    @json_errors
    def api_mark_absent():
        data = json_body()
        work_date = _date_arg(data.get("date"), "date") or date.today()
        record = attendance.mark_absent(str(data.get("employeeId") or ""), current_organization_id(), work_date)
        return ok(marked=record is not None, record=record.to_document() if record else None)

    @app.route("/api/attendance/organization", methods=["GET"], endpoint="api_organization_day")
    @admin_required
    @json_errors
    def api_organization_day():
        work_date = _date_arg(request.args.get("date"), "date") or date.today()
        records = container.attendance_repo.list_for_organization(current_organization_id(), work_date)
        return ok(date=work_date.isoformat(), records=[r.to_document() for r in records])
