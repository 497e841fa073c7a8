from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Optional

from .attendance.document_attendance_repository import DocumentAttendanceRepository
from .attendance.factory import AttendanceStrategyFactory
from .attendance.service import AttendanceService
from .common.datetime_utils import now_local
from .core import constants
from .database.connection import DBConfig, DatabaseConnection
from .documents.mysql_document_store import MySQLDocumentStore
from .documents.repository import DocumentStore
from .sync.buffer import LocalBuffer
from .sync.mysql_local_buffer import MySQLLocalBuffer
from .sync.queue import OfflineWriteQueue
from .sync.scheduler import SyncScheduler
from .sync.writer import DocumentWriter
from .tracking.detector import DetectorConfig, TransitionDetector
from .tracking.document_location_log import DocumentLocationLog
from .tracking.service import TrackingService
from .zones.document_zone_repository import DocumentZoneRepository
from .zones.registry import ZoneRegistry
from .zones.repository import NativeZoneMonitor


@dataclass(frozen=True)
class Container:
    store: DocumentStore
    buffer: LocalBuffer

    sync_queue: OfflineWriteQueue
    sync_scheduler: SyncScheduler
    writer: DocumentWriter

    zone_registry: ZoneRegistry
    detector: TransitionDetector
    attendance_repo: DocumentAttendanceRepository

    attendance_service: AttendanceService
    tracking_service: TrackingService

    sample_interval_s: float

    def shutdown(self) -> None:
        self.tracking_service.shutdown()
        self.sync_scheduler.stop()


def _setting(settings: Any, name: str, default: Any) -> Any:
    value = getattr(settings, name, None)
    return default if value is None else value


def _mysql_connection(db_config: dict) -> DatabaseConnection:
    return DatabaseConnection.get_instance(DBConfig.from_mapping(db_config))


def build_container(
    *,
    settings: Any,
    store: Optional[DocumentStore] = None,
    buffer: Optional[LocalBuffer] = None,
    monitor: Optional[NativeZoneMonitor] = None,
    clock: Callable[[], datetime] = now_local,
    sleep: Callable[[float], Any] = time.sleep,
) -> Container:
    """Wire every service. `store`/`buffer` default to the MySQL adapters."""

    if store is None or buffer is None:
        conn = _mysql_connection(getattr(settings, "DB_CONFIG"))
        store = store or MySQLDocumentStore(conn)
        buffer = buffer or MySQLLocalBuffer(conn)

    sync_queue = OfflineWriteQueue(
        buffer,
        store,
        max_retries=int(_setting(settings, "SYNC_MAX_RETRIES", constants.DEFAULT_MAX_RETRIES)),
        backoff_base_s=float(_setting(settings, "SYNC_BACKOFF_BASE_SECONDS", constants.DEFAULT_BACKOFF_BASE_SECONDS)),
        sleep=sleep,
        clock=clock,
    )
    sync_scheduler = SyncScheduler(
        sync_queue,
        interval_s=float(_setting(settings, "SYNC_INTERVAL_SECONDS", constants.DEFAULT_SYNC_INTERVAL_SECONDS)),
        online=True,
    )
    writer = DocumentWriter(store, sync_queue, on_queued=sync_scheduler.request_flush)

    zone_registry = ZoneRegistry(DocumentZoneRepository(store), monitor)
    detector = TransitionDetector(
        DetectorConfig(
            loitering_delay_s=float(_setting(settings, "LOITERING_DELAY_SECONDS", constants.DEFAULT_LOITERING_DELAY_SECONDS)),
            dwell_threshold_s=float(_setting(settings, "DWELL_THRESHOLD_SECONDS", constants.DEFAULT_DWELL_THRESHOLD_SECONDS)),
            accuracy_ceiling_m=float(_setting(settings, "ACCURACY_CEILING_METERS", constants.DEFAULT_ACCURACY_CEILING_METERS)),
        )
    )
    attendance_repo = DocumentAttendanceRepository(store, writer)

    attendance_service = AttendanceService(
        attendance_repo,
        zone_registry,
        strategy_factory=AttendanceStrategyFactory(),
        qr_token=getattr(settings, "QR_TOKEN", None),
        accuracy_ceiling_m=detector.config.accuracy_ceiling_m,
        clock=clock,
    )
    tracking_service = TrackingService(
        zone_registry,
        detector,
        on_event=attendance_service.handle_transition,
        location_log=DocumentLocationLog(writer),
        queue=sync_queue,
    )

    return Container(
        store=store,
        buffer=buffer,
        sync_queue=sync_queue,
        sync_scheduler=sync_scheduler,
        writer=writer,
        zone_registry=zone_registry,
        detector=detector,
        attendance_repo=attendance_repo,
        attendance_service=attendance_service,
        tracking_service=tracking_service,
        sample_interval_s=float(_setting(settings, "SAMPLE_INTERVAL_SECONDS", constants.DEFAULT_SAMPLE_INTERVAL_SECONDS)),
    )
