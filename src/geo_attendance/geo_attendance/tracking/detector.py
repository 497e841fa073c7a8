"""Debounced zone membership detection.

GPS noise near a boundary makes a device flicker in and out of a zone. Entry
and exit are only confirmed after the position has stayed on the new side for
the zone's loitering delay; a reversal before that reverts the pending change.

State machine per subject::

    Outside --contained--> PendingEnter --delay elapsed--> Inside  (emit ENTER)
    PendingEnter --not contained--> Outside
    Inside --left zone--> PendingExit --delay elapsed--> Outside | PendingEnter  (emit EXIT)
    PendingExit --back inside--> Inside
    Inside --stayed past dwell threshold--> Inside  (emit DWELL once per stay)
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import Iterable, Optional

from ..core.constants import (
    DEFAULT_ACCURACY_CEILING_METERS,
    DEFAULT_DWELL_THRESHOLD_SECONDS,
    DEFAULT_LOITERING_DELAY_SECONDS,
)
from ..core.enums import MembershipPhase, TransitionKind
from ..geo.distance import is_inside
from ..zones.model import Zone
from ..zones.registry import resolve_containing_zone
from .model import MembershipState, PositionSample, TransitionEvent


@dataclass(frozen=True)
class DetectorConfig:
    loitering_delay_s: float = DEFAULT_LOITERING_DELAY_SECONDS
    dwell_threshold_s: float = DEFAULT_DWELL_THRESHOLD_SECONDS
    accuracy_ceiling_m: float = DEFAULT_ACCURACY_CEILING_METERS


class TransitionDetector:
    def __init__(self, config: DetectorConfig | None = None):
        self._config = config or DetectorConfig()

    @property
    def config(self) -> DetectorConfig:
        return self._config

    def loitering_delay(self, zone: Optional[Zone]) -> timedelta:
        seconds = self._config.loitering_delay_s
        if zone is not None and zone.loitering_delay_s is not None:
            seconds = zone.loitering_delay_s
        return timedelta(seconds=float(seconds))

    def is_low_confidence(self, sample: PositionSample) -> bool:
        """Low-confidence samples still drive transitions but never verify attendance."""

        return sample.is_simulated or sample.horizontal_accuracy_m > self._config.accuracy_ceiling_m

    def evaluate(
        self,
        employee_id: str,
        state: MembershipState,
        sample: PositionSample,
        zones: Iterable[Zone],
    ) -> tuple[MembershipState, list[TransitionEvent]]:
        """Pure step function: returns the next state and any confirmed events."""

        zones = tuple(zones)
        now = sample.captured_at
        point = sample.point
        low_confidence = self.is_low_confidence(sample)
        events: list[TransitionEvent] = []

        def emit(kind: TransitionKind, zone_id: str) -> None:
            events.append(
                TransitionEvent(
                    employee_id=employee_id,
                    zone_id=zone_id,
                    kind=kind,
                    occurred_at=now,
                    latitude=sample.latitude,
                    longitude=sample.longitude,
                    low_confidence=low_confidence,
                )
            )

        if state.phase in (MembershipPhase.INSIDE, MembershipPhase.PENDING_EXIT):
            zone = next((z for z in zones if z.zone_id == state.zone_id), None)
            if zone is not None and zone.is_active_on(now) and is_inside(point, zone):
                state = state.with_changes(phase=MembershipPhase.INSIDE, since=None)
                dwell = timedelta(seconds=float(self._config.dwell_threshold_s))
                if not state.dwell_emitted and now - state.entered_at >= dwell:
                    emit(TransitionKind.DWELL, zone.zone_id)
                    state = state.with_changes(dwell_emitted=True)
                return state.with_changes(last_sample_at=now), events

            if state.phase == MembershipPhase.INSIDE:
                state = state.with_changes(phase=MembershipPhase.PENDING_EXIT, since=now)
            if now - state.since < self.loitering_delay(zone):
                return state.with_changes(last_sample_at=now), events

            emit(TransitionKind.EXIT, state.zone_id)
            state = MembershipState()

        candidate = resolve_containing_zone(point, zones, now)
        if candidate is None:
            return MembershipState(last_sample_at=now), events

        if state.phase != MembershipPhase.PENDING_ENTER or state.zone_id != candidate.zone_id:
            state = MembershipState(phase=MembershipPhase.PENDING_ENTER, zone_id=candidate.zone_id, since=now)

        if now - state.since >= self.loitering_delay(candidate):
            emit(TransitionKind.ENTER, candidate.zone_id)
            state = MembershipState(phase=MembershipPhase.INSIDE, zone_id=candidate.zone_id, entered_at=now)

        return state.with_changes(last_sample_at=now), events
