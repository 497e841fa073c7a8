from __future__ import annotations

import logging
import threading
import time
import uuid
from collections import Counter
from datetime import datetime
from typing import Any, Callable, Mapping, Optional

from ..common.datetime_utils import now_local
from ..core.constants import DEFAULT_BACKOFF_BASE_SECONDS, DEFAULT_MAX_RETRIES
from ..core.exceptions import InvalidPayload, RemoteUnavailable, RetryExhausted
from ..documents.repository import DocumentStore
from .buffer import LocalBuffer
from .model import FlushResult, QueuedWrite

logger = logging.getLogger(__name__)


class OfflineWriteQueue:
    """Durable buffer of writes that replays them to the remote store.

    An entry is marked synced only after the store confirmed the commit. Writes
    are merges keyed by document id, so replaying an entry twice is harmless.
    Entries that exhaust their retries stay queued for the next flush.
    """

    def __init__(
        self,
        buffer: LocalBuffer,
        store: DocumentStore,
        *,
        max_retries: int = DEFAULT_MAX_RETRIES,
        backoff_base_s: float = DEFAULT_BACKOFF_BASE_SECONDS,
        sleep: Callable[[float], Any] = time.sleep,
        clock: Callable[[], datetime] = now_local,
    ):
        if int(max_retries) < 1:
            raise ValueError("max_retries must be at least 1")
        self._buffer = buffer
        self._store = store
        self._max_retries = int(max_retries)
        self._backoff_base_s = float(backoff_base_s)
        self._sleep = sleep
        self._clock = clock
        self._flush_lock = threading.Lock()
        self._enqueue_lock = threading.Lock()
        self._next_sequence: Optional[int] = None
        self._last_synced_at: Optional[datetime] = None

    @property
    def last_synced_at(self) -> Optional[datetime]:
        return self._last_synced_at

    @property
    def is_flushing(self) -> bool:
        return self._flush_lock.locked()

    def enqueue(self, collection: str, payload: Mapping[str, Any], *, doc_id: str | None = None) -> QueuedWrite:
        """Append locally and return immediately; never touches the network."""

        with self._enqueue_lock:
            if self._next_sequence is None:
                # Continue after whatever survived a restart.
                self._next_sequence = max((e.sequence for e in self.entries()), default=0) + 1
            entry = QueuedWrite(
                id=str(uuid.uuid4()),
                target_collection=collection,
                doc_id=str(doc_id or payload.get("id") or uuid.uuid4()),
                payload=dict(payload),
                created_at=self._clock(),
                sequence=self._next_sequence,
            )
            self._buffer.put(entry.id, entry.to_dict())
            self._next_sequence += 1
        logger.info("Queued %s/%s for sync (entry %s)", collection, entry.doc_id, entry.id)
        return entry

    def entries(self) -> list[QueuedWrite]:
        items: list[QueuedWrite] = []
        for raw in self._buffer.values():
            try:
                items.append(QueuedWrite.from_dict(raw))
            except InvalidPayload as e:
                logger.error("Skipping unreadable buffer entry %s: %s", raw.get("id"), e)
        items.sort(key=lambda e: (e.sequence, e.created_at, e.id))
        return items

    def pending(self) -> list[QueuedWrite]:
        return [e for e in self.entries() if not e.synced]

    def pending_count(self) -> int:
        return len(self.pending())

    def has_pending(self, collection: str, doc_id: str) -> bool:
        return any(e.target_collection == collection and e.doc_id == doc_id for e in self.pending())

    def stats(self) -> dict[str, int]:
        """Unsynced entries per collection."""

        return dict(Counter(e.target_collection for e in self.pending()))

    def purge_synced(self) -> int:
        synced = [e for e in self.entries() if e.synced]
        for entry in synced:
            self._buffer.delete(entry.id)
        return len(synced)

    def flush(self) -> FlushResult:
        """Replay unsynced entries in creation order.

        Only one flush runs at a time; a concurrent call returns a skipped
        result immediately. The batch is snapshotted at start, so entries
        enqueued meanwhile wait for the next flush.
        """

        if not self._flush_lock.acquire(blocking=False):
            logger.debug("Flush already in progress, skipping")
            return FlushResult(skipped=True)
        try:
            batch = self.pending()
            synced = failed = deferred = 0
            exhausted: list[RetryExhausted] = []
            # A later write to a document must never land before an earlier failed one.
            blocked: set[tuple[str, str]] = set()

            for entry in batch:
                key = (entry.target_collection, entry.doc_id)
                if key in blocked:
                    deferred += 1
                    continue
                error = self._commit_with_retry(entry)
                if error is None:
                    synced += 1
                else:
                    failed += 1
                    exhausted.append(error)
                    blocked.add(key)

            # Confirmed entries leave the buffer so it only ever holds pending work.
            purged = self.purge_synced()
            if batch:
                logger.info(
                    "Flush finished: %d synced, %d failed, %d deferred, %d purged", synced, failed, deferred, purged
                )
            return FlushResult(
                synced=synced, failed=failed, deferred=deferred, purged=purged, exhausted=tuple(exhausted)
            )
        finally:
            self._flush_lock.release()

    def _commit_with_retry(self, entry: QueuedWrite) -> Optional[RetryExhausted]:
        last_error: Optional[Exception] = None
        for attempt in range(1, self._max_retries + 1):
            try:
                self._store.set(entry.target_collection, entry.doc_id, entry.payload, merge=True)
            except (RemoteUnavailable, TimeoutError) as e:
                last_error = e
            except Exception as e:
                logger.exception("Unexpected error syncing entry %s", entry.id)
                last_error = e
            else:
                now = self._clock()
                self._buffer.put(entry.id, entry.mark_synced(now).to_dict())
                self._last_synced_at = now
                return None

            entry = entry.with_failed_attempt()
            self._buffer.put(entry.id, entry.to_dict())
            if attempt < self._max_retries:
                self._sleep(self._backoff_base_s * attempt)

        error = RetryExhausted(entry.id, self._max_retries, last_error)
        logger.warning("%s; keeping it queued for the next flush", error)
        return error
