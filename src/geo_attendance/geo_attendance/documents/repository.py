from __future__ import annotations

import threading
from typing import Any, Iterator, Mapping, Optional, Protocol, Sequence

Document = dict[str, Any]


class DocumentStore(Protocol):
    """Remote document database keyed by collection + id.

    Every call may raise `RemoteUnavailable` (connectivity, timeout, backend error).
    Returned documents always carry their id under the "id" key.
    """

    def get(self, collection: str, doc_id: str) -> Optional[Document]:
        raise NotImplementedError

    def set(self, collection: str, doc_id: str, data: Mapping[str, Any], *, merge: bool = False) -> None:
        raise NotImplementedError

    def delete(self, collection: str, doc_id: str) -> None:
        raise NotImplementedError

    def query(self, collection: str, filters: Mapping[str, Any] | None = None) -> Sequence[Document]:
        """Equality filters only."""

        raise NotImplementedError

    def subscribe(
        self,
        collection: str,
        filters: Mapping[str, Any] | None = None,
        *,
        stop: threading.Event | None = None,
    ) -> Iterator[Sequence[Document]]:
        """Yield a full result-set snapshot on subscribe and after every change."""

        raise NotImplementedError


def matches(document: Mapping[str, Any], filters: Mapping[str, Any] | None) -> bool:
    return all(document.get(k) == v for k, v in (filters or {}).items())
