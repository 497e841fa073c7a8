from __future__ import annotations

from typing import Optional

from ...core.enums import AttendanceAction, AttendanceStatus
from ...tracking.model import TransitionEvent
from ...zones.model import Zone
from ..model import AttendanceRecord
from .base import AttendanceDecision, AttendanceStrategy


class AutoCheckOutStrategy(AttendanceStrategy):
    """Confirmed exit from the check-in zone closes an open session."""

    def decide(self, *, event: TransitionEvent, zone: Zone, record: Optional[AttendanceRecord]) -> AttendanceDecision:
        if not zone.auto_check_out:
            return AttendanceDecision(AttendanceAction.NONE, "zone does not check out automatically")
        if record is None or record.status != AttendanceStatus.CHECKED_IN:
            return AttendanceDecision(AttendanceAction.NONE, "not checked in")
        if record.zone_id != zone.zone_id:
            return AttendanceDecision(AttendanceAction.NONE, "exit from a zone other than the check-in zone")
        return AttendanceDecision(AttendanceAction.CHECK_OUT)
