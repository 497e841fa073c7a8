from __future__ import annotations

import copy
import threading
from collections import defaultdict
from datetime import datetime
from types import SimpleNamespace
from typing import Any, Iterator, Mapping, Optional, Sequence

import pytest

from src.geo_attendance.geo_attendance.container import build_container
from src.geo_attendance.geo_attendance.core.exceptions import PermissionUnavailable, RemoteUnavailable
from src.geo_attendance.geo_attendance.documents.repository import Document, matches
from src.geo_attendance.geo_attendance.geo.model import GeoPoint
from src.geo_attendance.geo_attendance.tracking.model import PositionSample
from src.geo_attendance.geo_attendance.zones.model import NativeZoneSummary, Zone

# ~1 degree of latitude in metres on the mean Earth sphere.
METERS_PER_DEGREE = 111_194.9266


class InMemoryDocumentStore:
    """Remote store double. `offline` fails every call; `fail_writes` fails the next N sets."""

    def __init__(self):
        self.collections: dict[str, dict[str, Document]] = defaultdict(dict)
        self.offline = False
        self.fail_writes = 0
        self.set_calls: list[tuple[str, str, dict]] = []

    def _check(self) -> None:
        if self.offline:
            raise RemoteUnavailable("store is offline")

    def get(self, collection: str, doc_id: str) -> Optional[Document]:
        self._check()
        doc = self.collections[collection].get(doc_id)
        return copy.deepcopy(doc) if doc is not None else None

    def set(self, collection: str, doc_id: str, data: Mapping[str, Any], *, merge: bool = False) -> None:
        self._check()
        if self.fail_writes:
            self.fail_writes -= 1
            raise RemoteUnavailable("transient write failure")
        self.set_calls.append((collection, doc_id, dict(data)))
        current = self.collections[collection].get(doc_id, {}) if merge else {}
        self.collections[collection][doc_id] = {**current, **copy.deepcopy(dict(data)), "id": doc_id}

    def delete(self, collection: str, doc_id: str) -> None:
        self._check()
        self.collections[collection].pop(doc_id, None)

    def query(self, collection: str, filters: Mapping[str, Any] | None = None) -> Sequence[Document]:
        self._check()
        return [copy.deepcopy(d) for d in self.collections[collection].values() if matches(d, filters)]

    def subscribe(
        self,
        collection: str,
        filters: Mapping[str, Any] | None = None,
        *,
        stop: threading.Event | None = None,
    ) -> Iterator[Sequence[Document]]:
        yield self.query(collection, filters)


class InMemoryBuffer:
    def __init__(self):
        self.items: dict[str, dict[str, Any]] = {}

    def put(self, key: str, value: dict[str, Any]) -> None:
        self.items[key] = copy.deepcopy(value)

    def get(self, key: str) -> Optional[dict[str, Any]]:
        value = self.items.get(key)
        return copy.deepcopy(value) if value is not None else None

    def delete(self, key: str) -> None:
        self.items.pop(key, None)

    def values(self):
        return [copy.deepcopy(v) for v in self.items.values()]


class FakeZoneMonitor:
    def __init__(self, *, permission: bool = True):
        self.permission = permission
        self.active: dict[str, tuple[GeoPoint, float]] = {}

    def _check(self) -> None:
        if not self.permission:
            raise PermissionUnavailable("background location denied")

    def add_zone(self, zone_id: str, center: GeoPoint, radius_m: float) -> bool:
        self._check()
        self.active[zone_id] = (center, radius_m)
        return True

    def remove_zone(self, zone_id: str) -> bool:
        self._check()
        return self.active.pop(zone_id, None) is not None

    def remove_all(self) -> None:
        self._check()
        self.active.clear()

    def list_active(self) -> Sequence[NativeZoneSummary]:
        self._check()
        return [NativeZoneSummary(zid, c.latitude, c.longitude, r) for zid, (c, r) in self.active.items()]


def north_of(center: GeoPoint, meters: float) -> GeoPoint:
    return GeoPoint(center.latitude + meters / METERS_PER_DEGREE, center.longitude)


@pytest.fixture()
def fixed_now() -> datetime:
    # Monday
    return datetime(2025, 1, 6, 9, 0, 0)


@pytest.fixture()
def store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture()
def buffer() -> InMemoryBuffer:
    return InMemoryBuffer()


@pytest.fixture()
def monitor() -> FakeZoneMonitor:
    return FakeZoneMonitor()


@pytest.fixture()
def make_zone():
    def _make(zone_id: str = "office", *, radius_m: float = 100, center: GeoPoint | None = None, **kwargs) -> Zone:
        return Zone(
            zone_id=zone_id,
            organization_id=kwargs.pop("organization_id", "org-1"),
            name=kwargs.pop("name", zone_id.title()),
            center=center or GeoPoint(0.0, 0.0),
            radius_m=radius_m,
            **kwargs,
        )

    return _make


@pytest.fixture()
def make_sample():
    def _make(at: datetime, point: GeoPoint | None = None, *, accuracy: float = 10.0, simulated: bool = False) -> PositionSample:
        point = point or GeoPoint(0.0, 0.0)
        return PositionSample(
            latitude=point.latitude,
            longitude=point.longitude,
            horizontal_accuracy_m=accuracy,
            captured_at=at,
            is_simulated=simulated,
        )

    return _make


@pytest.fixture()
def outside_point() -> GeoPoint:
    return north_of(GeoPoint(0.0, 0.0), 500)


@pytest.fixture(name="north_of")
def north_of_fixture():
    return north_of


@pytest.fixture()
def settings():
    return SimpleNamespace(
        QR_TOKEN="TEST_QR_TOKEN",
        LOITERING_DELAY_SECONDS=30,
        DWELL_THRESHOLD_SECONDS=15 * 60,
        ACCURACY_CEILING_METERS=100,
        SAMPLE_INTERVAL_SECONDS=30,
        SYNC_INTERVAL_SECONDS=15 * 60,
        SYNC_MAX_RETRIES=3,
        SYNC_BACKOFF_BASE_SECONDS=2,
    )


@pytest.fixture()
def sleeps() -> list:
    return []


@pytest.fixture()
def container(settings, store, buffer, monitor, fixed_now, sleeps):
    c = build_container(
        settings=settings,
        store=store,
        buffer=buffer,
        monitor=monitor,
        clock=lambda: fixed_now,
        sleep=sleeps.append,
    )
    # Flushes only run when a test asks for them.
    c.sync_scheduler.set_online(False)
    yield c
    c.shutdown()
