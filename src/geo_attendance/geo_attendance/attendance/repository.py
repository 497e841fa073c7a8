from __future__ import annotations

from datetime import date
from typing import Optional, Protocol, Sequence

from .model import AttendanceRecord


class AttendanceRepository(Protocol):
    def get_for_employee_and_date(self, employee_id: str, work_date: date) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def save(self, record: AttendanceRecord) -> None:
        """Create or replace the record. Must not fail for connectivity reasons."""

        raise NotImplementedError

    def list_for_employee(
        self,
        employee_id: str,
        *,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        limit: int = 30,
    ) -> Sequence[AttendanceRecord]:
        """Most recent first."""

        raise NotImplementedError

    def list_for_organization(self, organization_id: str, work_date: date) -> Sequence[AttendanceRecord]:
        raise NotImplementedError
