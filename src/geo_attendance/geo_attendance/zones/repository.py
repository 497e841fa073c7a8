from __future__ import annotations

import threading
from typing import Iterator, Optional, Protocol, Sequence

from ..geo.model import GeoPoint
from .model import NativeZoneSummary, Zone


class ZoneRepository(Protocol):
    def list_for_organization(self, organization_id: str) -> Sequence[Zone]:
        raise NotImplementedError

    def get_by_id(self, zone_id: str) -> Optional[Zone]:
        raise NotImplementedError

    def save(self, zone: Zone) -> None:
        raise NotImplementedError

    def delete(self, zone_id: str) -> None:
        raise NotImplementedError

    def watch(self, organization_id: str, *, stop: threading.Event | None = None) -> Iterator[Sequence[Zone]]:
        """Yield the organization's full zone list every time it changes."""

        raise NotImplementedError


class NativeZoneMonitor(Protocol):
    """OS-level geofencing. An optional power optimization, never a dependency.

    Any call may raise (typically `PermissionUnavailable`).
    """

    def add_zone(self, zone_id: str, center: GeoPoint, radius_m: float) -> bool:
        raise NotImplementedError

    def remove_zone(self, zone_id: str) -> bool:
        raise NotImplementedError

    def remove_all(self) -> None:
        raise NotImplementedError

    def list_active(self) -> Sequence[NativeZoneSummary]:
        raise NotImplementedError
