from __future__ import annotations

from typing import Iterator, Protocol

from .model import PositionSample


class PositionSource(Protocol):
    """Lazy, infinite, non-restartable stream of position samples.

    A sample that fails to arrive is simply absent; `start` raises
    `PermissionUnavailable` when location permission is missing.
    """

    def start(self, interval_seconds: float) -> None:
        raise NotImplementedError

    def stop(self) -> None:
        raise NotImplementedError

    def __iter__(self) -> Iterator[PositionSample]:
        raise NotImplementedError


class LocationLog(Protocol):
    def record(self, employee_id: str, sample: PositionSample) -> None:
        raise NotImplementedError
