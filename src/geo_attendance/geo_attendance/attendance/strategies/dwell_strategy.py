from __future__ import annotations

from typing import Optional

from ...tracking.model import TransitionEvent
from ...zones.model import Zone
from ..model import AttendanceRecord
from .base import NO_ACTION, AttendanceDecision, AttendanceStrategy


class DwellStrategy(AttendanceStrategy):
    """Dwell is informational only."""

    def decide(self, *, event: TransitionEvent, zone: Zone, record: Optional[AttendanceRecord]) -> AttendanceDecision:
        return NO_ACTION
