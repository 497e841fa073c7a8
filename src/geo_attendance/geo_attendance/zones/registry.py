from __future__ import annotations

import logging
import threading
from datetime import datetime
from types import MappingProxyType
from typing import Callable, Iterable, Mapping, Optional, Sequence

from ..core.exceptions import NotFoundError, PermissionUnavailable, RemoteUnavailable
from ..geo.distance import is_inside
from ..geo.model import GeoPoint
from .model import NativeZoneSummary, Zone
from .repository import NativeZoneMonitor, ZoneRepository

logger = logging.getLogger(__name__)


def resolve_containing_zone(point: GeoPoint, zones: Iterable[Zone], at: datetime) -> Optional[Zone]:
    """Most specific eligible zone containing `point`.

    Eligible means active and scheduled for `at`'s weekday. Ties break on the
    smallest radius, then the lexicographically smallest id.
    """

    candidates = [z for z in zones if z.is_active_on(at) and is_inside(point, z)]
    if not candidates:
        return None
    return min(candidates, key=lambda z: (z.radius_m, z.zone_id))


class ZoneRegistry:
    """Read-mostly cache of zones per organization.

    Each organization's zones are held as an immutable tuple and the whole
    mapping is swapped under a writer lock, so concurrent readers always see a
    complete snapshot without locking.
    """

    def __init__(self, zones: ZoneRepository, monitor: NativeZoneMonitor | None = None):
        self._zones = zones
        self._monitor = monitor
        self._snapshots: Mapping[str, tuple[Zone, ...]] = MappingProxyType({})
        self._write_lock = threading.Lock()
        self._permission_degraded = False

    @property
    def permission_degraded(self) -> bool:
        return self._permission_degraded

    def list(self, organization_id: str) -> tuple[Zone, ...]:
        snapshot = self._snapshots.get(organization_id)
        if snapshot is None:
            self.refresh(organization_id)
            snapshot = self._snapshots.get(organization_id, ())
        return snapshot

    def get(self, zone_id: str) -> Zone:
        for zones in self._snapshots.values():
            for zone in zones:
                if zone.zone_id == zone_id:
                    return zone
        zone = self._zones.get_by_id(zone_id)
        if zone is None:
            raise NotFoundError(f"Zone {zone_id} does not exist")
        return zone

    def resolve(self, point: GeoPoint, organization_id: str, at: datetime) -> Optional[Zone]:
        return resolve_containing_zone(point, self.list(organization_id), at)

    def refresh(self, organization_id: str) -> bool:
        """Atomic replace on success; the previous snapshot survives a failure."""

        try:
            zones = self._zones.list_for_organization(organization_id)
        except RemoteUnavailable as e:
            logger.warning("Zone refresh for %s failed, keeping last snapshot: %s", organization_id, e)
            return False
        self._replace(organization_id, zones)
        logger.debug("Zone snapshot for %s refreshed (%d zones)", organization_id, len(zones))
        return True

    def upsert(self, zone: Zone) -> Zone:
        self._zones.save(zone)
        with self._write_lock:
            updated = {
                org: tuple(z for z in zones if z.zone_id != zone.zone_id)
                for org, zones in self._snapshots.items()
            }
            if zone.organization_id in updated:
                updated[zone.organization_id] = updated[zone.organization_id] + (zone,)
            self._snapshots = MappingProxyType(updated)

        if zone.active:
            self._call_native("add", self._add_native, zone)
        else:
            self._call_native("remove", lambda m: m.remove_zone(zone.zone_id))
        return zone

    def remove(self, zone_id: str) -> None:
        self._zones.delete(zone_id)
        with self._write_lock:
            self._snapshots = MappingProxyType(
                {org: tuple(z for z in zones if z.zone_id != zone_id) for org, zones in self._snapshots.items()}
            )
        self._call_native("remove", lambda m: m.remove_zone(zone_id))

    def register_all(self, organization_id: str) -> int:
        """Hand every active zone of the organization to the native monitor."""

        registered = 0
        for zone in self.list(organization_id):
            if zone.active and self._call_native("add", self._add_native, zone):
                registered += 1
        return registered

    def unregister_all(self) -> None:
        self._call_native("remove_all", lambda m: m.remove_all() or True)

    def native_zones(self) -> Sequence[NativeZoneSummary]:
        result: list[NativeZoneSummary] = []

        def collect(monitor: NativeZoneMonitor) -> bool:
            result.extend(monitor.list_active())
            return True

        self._call_native("list_active", collect)
        return result

    def watch(self, organization_id: str, *, stop: threading.Event | None = None) -> None:
        """Keep the organization's snapshot live from the store's change stream."""

        try:
            for zones in self._zones.watch(organization_id, stop=stop):
                self._replace(organization_id, zones)
        except RemoteUnavailable as e:
            logger.warning("Zone watch for %s ended: %s", organization_id, e)

    def _replace(self, organization_id: str, zones: Iterable[Zone]) -> None:
        with self._write_lock:
            updated = dict(self._snapshots)
            updated[organization_id] = tuple(zones)
            self._snapshots = MappingProxyType(updated)

    @staticmethod
    def _add_native(monitor: NativeZoneMonitor, zone: Zone) -> bool:
        return monitor.add_zone(zone.zone_id, zone.center, zone.radius_m)

    def _call_native(self, action: str, call: Callable[..., bool], *args) -> bool:
        # Native geofencing only saves battery; containment is always recomputed
        # from raw samples, so every failure here is logged and swallowed.
        if self._monitor is None:
            return False
        try:
            ok = bool(call(self._monitor, *args))
        except PermissionUnavailable as e:
            self._permission_degraded = True
            logger.warning("Native zone monitor %s unavailable (permission): %s", action, e)
            return False
        except Exception:
            logger.warning("Native zone monitor %s failed", action, exc_info=True)
            return False
        if ok:
            self._permission_degraded = False
        else:
            logger.warning("Native zone monitor rejected %s", action)
        return ok
