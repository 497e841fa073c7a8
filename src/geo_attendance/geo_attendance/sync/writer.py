from __future__ import annotations

import logging
from typing import Any, Callable, Mapping, Optional

from ..core.exceptions import RemoteUnavailable
from ..documents.repository import DocumentStore
from .queue import OfflineWriteQueue

logger = logging.getLogger(__name__)


class DocumentWriter:
    """Write-through to the remote store, falling back to the offline queue."""

    def __init__(
        self,
        store: DocumentStore,
        queue: OfflineWriteQueue,
        *,
        on_queued: Optional[Callable[[], Any]] = None,
    ):
        self._store = store
        self._queue = queue
        self._on_queued = on_queued

    @property
    def queue(self) -> OfflineWriteQueue:
        return self._queue

    def write(self, collection: str, doc_id: str, document: Mapping[str, Any]) -> bool:
        """Returns True when committed remotely, False when queued."""

        # Earlier queued writes for the same document must land first.
        if not self._queue.has_pending(collection, doc_id):
            try:
                self._store.set(collection, doc_id, document, merge=True)
                return True
            except RemoteUnavailable as e:
                logger.info("Remote write %s/%s failed, queueing: %s", collection, doc_id, e)

        self._queue.enqueue(collection, document, doc_id=doc_id)
        if self._on_queued is not None:
            self._on_queued()
        return False
