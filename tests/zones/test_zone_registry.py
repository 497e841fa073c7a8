from datetime import datetime, time

import pytest

from src.geo_attendance.geo_attendance.core.exceptions import InvalidPayload, NotFoundError, ValidationError
from src.geo_attendance.geo_attendance.geo.model import GeoPoint
from src.geo_attendance.geo_attendance.zones.document_zone_repository import DocumentZoneRepository
from src.geo_attendance.geo_attendance.zones.model import Zone
from src.geo_attendance.geo_attendance.zones.registry import ZoneRegistry, resolve_containing_zone


def test_overlapping_zones_resolve_to_smaller_radius(make_zone, fixed_now, north_of):
    campus = make_zone("campus", radius_m=200)
    lab = make_zone("lab", radius_m=50)
    point = north_of(GeoPoint(0, 0), 20)

    assert resolve_containing_zone(point, [campus, lab], fixed_now).zone_id == "lab"
    assert resolve_containing_zone(point, [lab, campus], fixed_now).zone_id == "lab"


def test_equal_radius_ties_break_on_zone_id(make_zone, fixed_now):
    zones = [make_zone("b-site"), make_zone("a-site")]
    assert resolve_containing_zone(GeoPoint(0, 0), zones, fixed_now).zone_id == "a-site"


def test_inactive_and_off_day_zones_are_not_eligible(make_zone, fixed_now):
    inactive = make_zone("closed", active=False)
    weekend = make_zone("weekend", active_weekdays=frozenset({6, 7}))

    assert resolve_containing_zone(GeoPoint(0, 0), [inactive, weekend], fixed_now) is None
    assert resolve_containing_zone(GeoPoint(0, 0), [weekend], datetime(2025, 1, 11, 9, 0)).zone_id == "weekend"


def test_zone_rejects_non_positive_radius(make_zone):
    with pytest.raises(ValidationError):
        make_zone(radius_m=0)
    with pytest.raises(ValidationError):
        make_zone(radius_m=-5)


def test_work_window_spanning_midnight(make_zone):
    night = make_zone("depot", work_window_start=time(22, 0), work_window_end=time(6, 0))

    assert night.is_within_work_window(datetime(2025, 1, 6, 23, 30))
    assert night.is_within_work_window(datetime(2025, 1, 7, 5, 59))
    assert not night.is_within_work_window(datetime(2025, 1, 7, 12, 0))


def test_zone_document_missing_field_is_invalid_payload():
    with pytest.raises(InvalidPayload):
        Zone.from_document({"id": "z1", "companyId": "org-1", "latitude": 0, "longitude": 0})


@pytest.mark.parametrize(
    "overrides",
    [{"workDays": ["monday"]}, {"workDays": [None]}, {"loiteringDelaySeconds": "soon"}],
)
def test_zone_document_with_bad_values_is_invalid_payload(overrides):
    doc = {"id": "z1", "companyId": "org-1", "latitude": 0, "longitude": 0, "radius": 100, **overrides}

    with pytest.raises(InvalidPayload):
        Zone.from_document(doc)


def test_malformed_zone_documents_are_skipped(store, make_zone):
    repo = DocumentZoneRepository(store)
    repo.save(make_zone("good"))
    store.collections["geofences"]["bad"] = {"id": "bad", "companyId": "org-1", "latitude": 0, "longitude": 0, "radius": -1}

    assert [z.zone_id for z in repo.list_for_organization("org-1")] == ["good"]


def test_refresh_keeps_last_snapshot_when_store_is_unreachable(store, make_zone):
    repo = DocumentZoneRepository(store)
    repo.save(make_zone("office"))
    registry = ZoneRegistry(repo)
    assert [z.zone_id for z in registry.list("org-1")] == ["office"]

    store.offline = True
    assert registry.refresh("org-1") is False
    assert [z.zone_id for z in registry.list("org-1")] == ["office"]


def test_upsert_replaces_zone_in_snapshot_and_registers_natively(store, monitor, make_zone):
    registry = ZoneRegistry(DocumentZoneRepository(store), monitor)
    registry.list("org-1")

    registry.upsert(make_zone("office", radius_m=100))
    registry.upsert(make_zone("office", radius_m=150))

    zones = registry.list("org-1")
    assert len(zones) == 1
    assert zones[0].radius_m == 150
    assert monitor.active["office"][1] == 150


def test_deactivating_zone_unregisters_it(store, monitor, make_zone):
    registry = ZoneRegistry(DocumentZoneRepository(store), monitor)
    registry.upsert(make_zone("office"))
    registry.upsert(make_zone("office", active=False))

    assert "office" not in monitor.active


def test_remove_drops_zone_everywhere(store, monitor, make_zone):
    registry = ZoneRegistry(DocumentZoneRepository(store), monitor)
    registry.upsert(make_zone("office"))
    registry.list("org-1")

    registry.remove("office")

    assert registry.list("org-1") == ()
    assert monitor.active == {}
    with pytest.raises(NotFoundError):
        registry.get("office")


def test_native_permission_denied_degrades_but_does_not_fail(store, monitor, make_zone):
    monitor.permission = False
    registry = ZoneRegistry(DocumentZoneRepository(store), monitor)

    registry.upsert(make_zone("office"))

    assert registry.permission_degraded is True
    assert [z.zone_id for z in registry.list("org-1")] == ["office"]
    assert registry.register_all("org-1") == 0

    monitor.permission = True
    assert registry.register_all("org-1") == 1
    assert registry.permission_degraded is False
    assert [z.zone_id for z in registry.native_zones()] == ["office"]

    registry.unregister_all()
    assert registry.native_zones() == []


def test_watch_swaps_in_the_streamed_snapshot(store, make_zone):
    registry = ZoneRegistry(DocumentZoneRepository(store))
    registry.list("org-1")
    store.set("geofences", "branch", make_zone("branch").to_document())

    registry.watch("org-1")

    assert [z.zone_id for z in registry.list("org-1")] == ["branch"]
