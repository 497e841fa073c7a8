from __future__ import annotations

from typing import Any, Iterable, Optional, Protocol


class LocalBuffer(Protocol):
    """Key-value persistence that survives process restarts."""

    def put(self, key: str, value: dict[str, Any]) -> None:
        raise NotImplementedError

    def get(self, key: str) -> Optional[dict[str, Any]]:
        raise NotImplementedError

    def delete(self, key: str) -> None:
        raise NotImplementedError

    def values(self) -> Iterable[dict[str, Any]]:
        raise NotImplementedError
