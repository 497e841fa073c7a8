from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from ...core.enums import AttendanceAction
from ...tracking.model import TransitionEvent
from ...zones.model import Zone
from ..model import AttendanceRecord


@dataclass(frozen=True)
class AttendanceDecision:
    action: AttendanceAction
    reason: Optional[str] = None


NO_ACTION = AttendanceDecision(action=AttendanceAction.NONE)


class AttendanceStrategy(ABC):
    """Strategy Pattern: encapsulate how a transition affects today's record."""

    @abstractmethod
    def decide(self, *, event: TransitionEvent, zone: Zone, record: Optional[AttendanceRecord]) -> AttendanceDecision:
        raise NotImplementedError
