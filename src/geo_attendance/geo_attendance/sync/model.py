from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Optional

from ..core.exceptions import InvalidPayload, RetryExhausted


@dataclass(frozen=True)
class QueuedWrite:
    """A document write that could not reach the remote store yet."""

    id: str
    target_collection: str
    doc_id: str
    payload: dict[str, Any]
    created_at: datetime
    # Enqueue order, durable across restarts. Replay follows it.
    sequence: int = 0
    synced: bool = False
    attempt_count: int = 0
    synced_at: Optional[datetime] = None

    def with_failed_attempt(self) -> QueuedWrite:
        return replace(self, attempt_count=self.attempt_count + 1)

    def mark_synced(self, at: datetime) -> QueuedWrite:
        return replace(self, synced=True, synced_at=at)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "targetCollection": self.target_collection,
            "docId": self.doc_id,
            "payload": self.payload,
            "createdAt": self.created_at.isoformat(),
            "sequence": self.sequence,
            "synced": self.synced,
            "attemptCount": self.attempt_count,
            "syncedAt": self.synced_at.isoformat() if self.synced_at else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> QueuedWrite:
        try:
            return cls(
                id=str(data["id"]),
                target_collection=str(data["targetCollection"]),
                doc_id=str(data["docId"]),
                payload=dict(data["payload"]),
                created_at=datetime.fromisoformat(data["createdAt"]),
                sequence=int(data.get("sequence", 0)),
                synced=bool(data.get("synced", False)),
                attempt_count=int(data.get("attemptCount", 0)),
                synced_at=datetime.fromisoformat(data["syncedAt"]) if data.get("syncedAt") else None,
            )
        except (KeyError, TypeError, ValueError) as e:
            raise InvalidPayload(f"Corrupt queued write: {e}")


@dataclass(frozen=True)
class FlushResult:
    synced: int = 0
    failed: int = 0
    deferred: int = 0
    purged: int = 0
    skipped: bool = False
    exhausted: tuple[RetryExhausted, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict[str, Any]:
        return {
            "synced": self.synced,
            "failed": self.failed,
            "deferred": self.deferred,
            "purged": self.purged,
            "skipped": self.skipped,
            "exhausted": [e.entry_id for e in self.exhausted],
        }
