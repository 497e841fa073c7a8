from __future__ import annotations

from dataclasses import dataclass

from ..core.enums import TransitionKind
from ..tracking.model import TransitionEvent
from .strategies.auto_check_in_strategy import AutoCheckInStrategy
from .strategies.auto_check_out_strategy import AutoCheckOutStrategy
from .strategies.base import AttendanceStrategy
from .strategies.dwell_strategy import DwellStrategy


@dataclass
class AttendanceStrategyFactory:
    """Factory Pattern: choose the strategy that handles a transition."""

    def for_event(self, event: TransitionEvent) -> AttendanceStrategy:
        if event.kind == TransitionKind.ENTER:
            return AutoCheckInStrategy()
        if event.kind == TransitionKind.EXIT:
            return AutoCheckOutStrategy()
        return DwellStrategy()
