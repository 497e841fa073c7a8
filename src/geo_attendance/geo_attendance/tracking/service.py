from __future__ import annotations

import logging
import threading
from concurrent.futures import Executor, ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Optional

from ..core.constants import DEFAULT_SAMPLE_INTERVAL_SECONDS, MIN_SAMPLE_INTERVAL_SECONDS
from ..core.exceptions import NotFoundError, PermissionUnavailable, ValidationError
from ..sync.queue import OfflineWriteQueue
from ..zones.registry import ZoneRegistry
from .detector import TransitionDetector
from .model import MembershipState, PositionSample, TrackingStatus, TransitionEvent
from .repository import LocationLog, PositionSource

logger = logging.getLogger(__name__)


@dataclass
class _Subject:
    employee_id: str
    organization_id: str
    state: MembershipState = field(default_factory=MembershipState)
    lock: threading.Lock = field(default_factory=threading.Lock)
    halted: threading.Event = field(default_factory=threading.Event)


class TrackingService:
    """Subject-stream boundary between position samples and attendance.

    Samples of one employee are evaluated strictly in order under that
    employee's lock; different employees never share mutable state. Evaluation
    is synchronous and I/O free. Persisting its consequences (attendance
    mutations, location log) runs on a single background worker so a slow write
    never delays the next sample.
    """

    def __init__(
        self,
        registry: ZoneRegistry,
        detector: TransitionDetector,
        *,
        on_event: Callable[[TransitionEvent], Any],
        location_log: LocationLog | None = None,
        queue: OfflineWriteQueue | None = None,
        executor: Executor | None = None,
    ):
        self._registry = registry
        self._detector = detector
        self._on_event = on_event
        self._location_log = location_log
        self._queue = queue
        self._executor = executor or ThreadPoolExecutor(max_workers=1, thread_name_prefix="attendance-writer")
        self._subjects: dict[str, _Subject] = {}
        self._subjects_lock = threading.Lock()
        self._stopped = threading.Event()
        self._position_permission_degraded = False

    @property
    def stopped(self) -> bool:
        return self._stopped.is_set()

    def start(self, employee_id: str, organization_id: str) -> None:
        if self._stopped.is_set():
            raise ValidationError("Tracking has been stopped")
        with self._subjects_lock:
            subject = self._subjects.get(employee_id)
            if subject is None or subject.organization_id != organization_id:
                self._subjects[employee_id] = _Subject(employee_id=employee_id, organization_id=organization_id)

    def membership(self, employee_id: str) -> MembershipState:
        return self._subject(employee_id).state

    def ingest(self, employee_id: str, sample: PositionSample) -> list[TransitionEvent]:
        if self._stopped.is_set():
            logger.debug("Tracking stopped, ignoring sample for %s", employee_id)
            return []
        return self._ingest(self._subject(employee_id), sample)

    def _ingest(self, subject: _Subject, sample: PositionSample) -> list[TransitionEvent]:
        employee_id = subject.employee_id
        with subject.lock:
            if subject.halted.is_set():
                return []
            try:
                last = subject.state.last_sample_at
                if last is not None and sample.captured_at < last:
                    logger.warning(
                        "Dropping out-of-order sample for %s (captured %s, last processed %s)",
                        employee_id,
                        sample.captured_at.isoformat(),
                        last.isoformat(),
                    )
                    return []
                zones = self._registry.list(subject.organization_id)
                state, events = self._detector.evaluate(employee_id, subject.state, sample, zones)
            except Exception:
                # Treat the sample as if it never arrived.
                logger.exception("Sample evaluation failed for %s, state unchanged", employee_id)
                return []
            subject.state = state

        if self._location_log is not None:
            self._submit(self._location_log.record, employee_id, sample)
        for event in events:
            logger.info("%s %s zone %s at %s", employee_id, event.kind.value, event.zone_id, event.occurred_at.isoformat())
            self._submit(self._on_event, event)
        return events

    def handle_native_event(self, payload: Mapping[str, Any]) -> Optional[TransitionEvent]:
        """Accept a tagged enter/exit/dwell event from the OS geofencing bridge."""

        event = TransitionEvent.from_payload(payload)
        if self._stopped.is_set():
            return None
        self._submit(self._on_event, event)
        return event

    def track(
        self,
        employee_id: str,
        organization_id: str,
        source: PositionSource,
        *,
        interval_seconds: float = DEFAULT_SAMPLE_INTERVAL_SECONDS,
    ) -> int:
        """Consume `source` until it ends or this employee (or the service) is stopped.

        Returns the number of samples processed.
        """

        if float(interval_seconds) < MIN_SAMPLE_INTERVAL_SECONDS:
            raise ValidationError(f"Sample interval must be at least {MIN_SAMPLE_INTERVAL_SECONDS}s")
        self.start(employee_id, organization_id)
        subject = self._subject(employee_id)
        try:
            source.start(float(interval_seconds))
        except PermissionUnavailable as e:
            self._position_permission_degraded = True
            logger.warning("Position source unavailable for %s: %s", employee_id, e)
            return 0

        self._position_permission_degraded = False
        processed = 0
        try:
            for sample in source:
                if self._stopped.is_set() or subject.halted.is_set():
                    break
                self._ingest(subject, sample)
                processed += 1
        finally:
            source.stop()
        return processed

    def mark_position_permission(self, granted: bool) -> None:
        self._position_permission_degraded = not granted

    def status(self) -> TrackingStatus:
        return TrackingStatus(
            tracking=not self._stopped.is_set() and bool(self._subjects),
            permission_degraded=self._position_permission_degraded or self._registry.permission_degraded,
            last_sync_at=self._queue.last_synced_at if self._queue else None,
            pending_writes=self._queue.pending_count() if self._queue else 0,
        )

    def drain(self) -> None:
        """Block until every delivery submitted so far has run."""

        if not self._stopped.is_set():
            self._executor.submit(lambda: None).result()

    def stop(self, employee_id: str) -> bool:
        """Halt one employee's stream. Other employees keep tracking."""

        with self._subjects_lock:
            subject = self._subjects.pop(employee_id, None)
        if subject is None:
            return False
        subject.halted.set()
        logger.info("Tracking stopped for %s", employee_id)
        return True

    def shutdown(self) -> None:
        """Halt every stream; in-flight and already-queued writes still finish."""

        self._stopped.set()
        self._executor.shutdown(wait=True)

    def _subject(self, employee_id: str) -> _Subject:
        subject = self._subjects.get(employee_id)
        if subject is None:
            raise NotFoundError(f"Tracking was not started for employee {employee_id}")
        return subject

    def _submit(self, fn: Callable[..., Any], *args: Any) -> None:
        try:
            self._executor.submit(self._run_isolated, fn, *args)
        except RuntimeError:
            logger.warning("Writer already shut down, dropping %s", getattr(fn, "__name__", fn))

    @staticmethod
    def _run_isolated(fn: Callable[..., Any], *args: Any) -> None:
        try:
            fn(*args)
        except Exception:
            logger.exception("Background delivery %s failed", getattr(fn, "__name__", fn))
