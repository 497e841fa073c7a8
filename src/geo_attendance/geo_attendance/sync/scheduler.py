from __future__ import annotations

import logging
import threading
from typing import Optional

from ..core.constants import DEFAULT_SYNC_INTERVAL_SECONDS
from ..core.enums import SyncState
from .model import FlushResult
from .queue import OfflineWriteQueue

logger = logging.getLogger(__name__)


class SyncScheduler:
    """Decides when the offline queue is flushed.

    Triggers: the offline -> online edge, an explicit request while online, and
    a periodic timer that runs regardless of the connectivity flag in case a
    connectivity change was never delivered.
    """

    def __init__(
        self,
        queue: OfflineWriteQueue,
        *,
        interval_s: float = DEFAULT_SYNC_INTERVAL_SECONDS,
        online: bool = False,
    ):
        self._queue = queue
        self._interval_s = float(interval_s)
        self._online = bool(online)
        self._state = SyncState.IDLE
        self._lock = threading.Lock()
        self._stop = threading.Event()
        self._timer_thread: Optional[threading.Thread] = None
        self._workers: list[threading.Thread] = []

    @property
    def online(self) -> bool:
        return self._online

    @property
    def state(self) -> SyncState:
        return self._state

    def set_online(self, online: bool) -> bool:
        """Record connectivity; returns True when this call triggered a flush."""

        with self._lock:
            came_online = online and not self._online
            self._online = bool(online)
        if came_online:
            logger.info("Connectivity restored, flushing offline queue")
            self._spawn("connectivity")
        return came_online

    def request_flush(self) -> bool:
        if not self._online or self._stop.is_set():
            return False
        self._spawn("request")
        return True

    def flush_now(self) -> FlushResult:
        return self._run_flush("manual")

    def start(self) -> None:
        if self._timer_thread is not None:
            return
        self._timer_thread = threading.Thread(target=self._periodic, name="sync-timer", daemon=True)
        self._timer_thread.start()

    def stop(self, timeout: float | None = None) -> None:
        """Stop triggering new flushes and let any in-flight flush finish."""

        self._stop.set()
        if self._timer_thread is not None:
            self._timer_thread.join(timeout)
        with self._lock:
            workers = list(self._workers)
        for worker in workers:
            worker.join(timeout)

    def _periodic(self) -> None:
        while not self._stop.wait(self._interval_s):
            self._run_flush("periodic")

    def _spawn(self, reason: str) -> None:
        worker = threading.Thread(target=self._run_flush, args=(reason,), name=f"sync-{reason}", daemon=True)
        with self._lock:
            self._workers = [w for w in self._workers if w.is_alive()]
            self._workers.append(worker)
        worker.start()

    def _run_flush(self, reason: str) -> FlushResult:
        self._state = SyncState.SYNCING
        try:
            result = self._queue.flush()
        except Exception:
            self._state = SyncState.ERROR
            logger.exception("Flush (%s) failed", reason)
            return FlushResult()
        if not result.skipped:
            self._state = SyncState.ERROR if result.exhausted else SyncState.COMPLETED
        logger.debug("Flush (%s): %s", reason, result.to_dict())
        return result
