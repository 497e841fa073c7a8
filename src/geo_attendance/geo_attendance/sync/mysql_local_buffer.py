from __future__ import annotations

from typing import Any, Iterable, Optional

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, dump_json, fetchall, fetchone, load_json
from .buffer import LocalBuffer


class MySQLLocalBuffer(LocalBuffer):
    """Durable buffer on the local MySQL instance (`local_buffer` table)."""

    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def put(self, key: str, value: dict[str, Any]) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO local_buffer(buffer_key, value)
                VALUES(%s,%s)
                ON DUPLICATE KEY UPDATE value=VALUES(value)
                """,
                (key, dump_json(value)),
            )

    def get(self, key: str) -> Optional[dict[str, Any]]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT value FROM local_buffer WHERE buffer_key=%s", (key,))
            row = fetchone(cur)
            return load_json(row["value"]) if row else None

    def delete(self, key: str) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM local_buffer WHERE buffer_key=%s", (key,))

    def values(self) -> Iterable[dict[str, Any]]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT value FROM local_buffer ORDER BY created_at, buffer_key")
            return [load_json(r["value"]) for r in fetchall(cur)]
