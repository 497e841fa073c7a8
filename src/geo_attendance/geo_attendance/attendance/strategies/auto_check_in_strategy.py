from __future__ import annotations

from typing import Optional

from ...core.enums import AttendanceAction
from ...tracking.model import TransitionEvent
from ...zones.model import Zone
from ..model import AttendanceRecord
from .base import AttendanceDecision, AttendanceStrategy


class AutoCheckInStrategy(AttendanceStrategy):
    """Confirmed entry checks in once per day, inside the zone's work window."""

    def decide(self, *, event: TransitionEvent, zone: Zone, record: Optional[AttendanceRecord]) -> AttendanceDecision:
        if not zone.auto_check_in:
            return AttendanceDecision(AttendanceAction.NONE, "zone does not check in automatically")
        if not zone.is_within_work_window(event.occurred_at):
            return AttendanceDecision(AttendanceAction.NONE, "outside the zone's work window")
        if record is not None:
            return AttendanceDecision(AttendanceAction.NONE, f"record already exists ({record.status.value})")
        return AttendanceDecision(AttendanceAction.CHECK_IN)
