from __future__ import annotations

import logging
import threading
from datetime import date
from typing import Iterable, Optional, Sequence

from ..core.constants import ATTENDANCE_COLLECTION, DEFAULT_ATTENDANCE_SNAPSHOT_SIZE
from ..core.exceptions import RemoteUnavailable, ValidationError
from ..documents.repository import Document, DocumentStore
from ..sync.writer import DocumentWriter
from .model import AttendanceRecord, record_id_for
from .repository import AttendanceRepository

logger = logging.getLogger(__name__)


class DocumentAttendanceRepository(AttendanceRepository):
    """Attendance records in the remote `attendance` collection.

    Writes go through `DocumentWriter` (queued while offline). Recently read or
    written records are kept in a local snapshot that answers reads while the
    store is unreachable. Past `snapshot_size` the least recently used records
    are dropped, except those with writes still queued.
    """

    def __init__(
        self,
        store: DocumentStore,
        writer: DocumentWriter,
        *,
        collection: str = ATTENDANCE_COLLECTION,
        snapshot_size: int = DEFAULT_ATTENDANCE_SNAPSHOT_SIZE,
    ):
        if int(snapshot_size) < 1:
            raise ValueError("snapshot_size must be at least 1")
        self._store = store
        self._writer = writer
        self._collection = collection
        self._snapshot_size = int(snapshot_size)
        self._snapshot: dict[str, AttendanceRecord] = {}
        self._lock = threading.Lock()

    def get_for_employee_and_date(self, employee_id: str, work_date: date) -> Optional[AttendanceRecord]:
        record_id = record_id_for(employee_id, work_date)
        with self._lock:
            local = self._snapshot.get(record_id)
        if local is not None and self._writer.queue.has_pending(self._collection, record_id):
            # The local copy is newer than anything the store has seen.
            return local
        try:
            doc = self._store.get(self._collection, record_id)
        except RemoteUnavailable as e:
            logger.info("Reading %s from local snapshot: %s", record_id, e)
            return local
        if doc is None:
            return local
        return self._remember(AttendanceRecord.from_document(doc))

    def save(self, record: AttendanceRecord) -> None:
        self._remember(record)
        self._writer.write(self._collection, record.record_id, record.to_document())

    def list_for_employee(
        self,
        employee_id: str,
        *,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        limit: int = 30,
    ) -> Sequence[AttendanceRecord]:
        records = self._query({"employeeId": employee_id}, lambda r: r.employee_id == employee_id)
        records = [
            r for r in records
            if (start_date is None or r.work_date >= start_date) and (end_date is None or r.work_date <= end_date)
        ]
        records.sort(key=lambda r: r.work_date, reverse=True)
        return records[: int(limit)]

    def list_for_organization(self, organization_id: str, work_date: date) -> Sequence[AttendanceRecord]:
        records = self._query({"companyId": organization_id}, lambda r: r.organization_id == organization_id)
        return [r for r in records if r.work_date == work_date]

    def _query(self, filters: dict, local_match) -> list[AttendanceRecord]:
        try:
            docs = self._store.query(self._collection, filters)
        except RemoteUnavailable as e:
            logger.info("Listing attendance from local snapshot: %s", e)
            with self._lock:
                return [r for r in self._snapshot.values() if local_match(r)]
        merged = {r.record_id: r for r in self._parse(docs)}
        with self._lock:
            # Locally newer records (still queued) win over the remote copy.
            for record_id, record in self._snapshot.items():
                if local_match(record) and self._writer.queue.has_pending(self._collection, record_id):
                    merged[record_id] = record
        return list(merged.values())

    def _parse(self, docs: Iterable[Document]) -> list[AttendanceRecord]:
        records: list[AttendanceRecord] = []
        for doc in docs:
            try:
                records.append(AttendanceRecord.from_document(doc))
            except ValidationError as e:
                logger.warning("Skipping attendance document: %s", e)
        return records

    @property
    def snapshot_ids(self) -> list[str]:
        with self._lock:
            return list(self._snapshot)

    def _remember(self, record: AttendanceRecord) -> AttendanceRecord:
        with self._lock:
            # Re-insert so dict order tracks recency.
            self._snapshot.pop(record.record_id, None)
            self._snapshot[record.record_id] = record
            self._trim(keep=record.record_id)
        return record

    def _trim(self, *, keep: str) -> None:
        excess = len(self._snapshot) - self._snapshot_size
        if excess <= 0:
            return
        pending = {e.doc_id for e in self._writer.queue.pending() if e.target_collection == self._collection}
        evictable = [rid for rid in self._snapshot if rid not in pending and rid != keep]
        for record_id in evictable[:excess]:
            del self._snapshot[record_id]
