from __future__ import annotations

import logging
import threading
from typing import Any, Iterator, Mapping, Optional, Sequence

from ..core.constants import DEFAULT_SUBSCRIBE_POLL_SECONDS
from ..core.exceptions import RemoteUnavailable
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, dump_json, fetchall, fetchone, load_json
from .repository import Document, DocumentStore, matches

logger = logging.getLogger(__name__)


class MySQLDocumentStore(DocumentStore):
    """Document store over a single `documents` table holding JSON bodies."""

    def __init__(self, conn_factory: DatabaseConnection, *, poll_seconds: float = DEFAULT_SUBSCRIBE_POLL_SECONDS):
        self._conn_factory = conn_factory
        self._poll_seconds = float(poll_seconds)

    def get(self, collection: str, doc_id: str) -> Optional[Document]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT doc_id, body FROM documents WHERE collection=%s AND doc_id=%s",
                (collection, doc_id),
            )
            row = fetchone(cur)
            return self._to_document(row) if row else None

    def set(self, collection: str, doc_id: str, data: Mapping[str, Any], *, merge: bool = False) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            body = dict(data)
            if merge:
                cur.execute(
                    "SELECT body FROM documents WHERE collection=%s AND doc_id=%s FOR UPDATE",
                    (collection, doc_id),
                )
                existing = fetchone(cur)
                if existing:
                    body = {**(load_json(existing["body"]) or {}), **body}
            body["id"] = doc_id
            cur.execute(
                """
                INSERT INTO documents(collection, doc_id, body)
                VALUES(%s,%s,%s)
                ON DUPLICATE KEY UPDATE body=VALUES(body)
                """,
                (collection, doc_id, dump_json(body)),
            )

    def delete(self, collection: str, doc_id: str) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM documents WHERE collection=%s AND doc_id=%s", (collection, doc_id))

    def query(self, collection: str, filters: Mapping[str, Any] | None = None) -> Sequence[Document]:
        # Equality filters are applied client-side to avoid per-field JSON indexes.
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT doc_id, body FROM documents WHERE collection=%s ORDER BY doc_id", (collection,))
            docs = [self._to_document(r) for r in fetchall(cur)]
        return [d for d in docs if matches(d, filters)]

    def subscribe(
        self,
        collection: str,
        filters: Mapping[str, Any] | None = None,
        *,
        stop: threading.Event | None = None,
    ) -> Iterator[Sequence[Document]]:
        """Polling emulation of a realtime listener."""

        stop = stop or threading.Event()
        last: Optional[Sequence[Document]] = None
        while not stop.is_set():
            try:
                current = self.query(collection, filters)
            except RemoteUnavailable as e:
                logger.warning("subscribe(%s) poll failed, will retry: %s", collection, e)
            else:
                if current != last:
                    last = current
                    yield current
            stop.wait(self._poll_seconds)

    @staticmethod
    def _to_document(row: dict) -> Document:
        body = load_json(row["body"]) or {}
        body["id"] = row["doc_id"]
        return body
