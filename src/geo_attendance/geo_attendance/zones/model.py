from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, time
from typing import Any, Optional

from ..common.datetime_utils import format_time_of_day, parse_time_of_day
from ..common.validators import require_non_empty, require_positive, require_weekdays
from ..core.enums import ZoneKind
from ..core.exceptions import InvalidPayload, ValidationError
from ..geo.model import GeoPoint


@dataclass(frozen=True)
class Zone:
    """Domain entity: an employer-defined circular geofence."""

    zone_id: str
    organization_id: str
    name: str
    center: GeoPoint
    radius_m: float
    kind: ZoneKind = ZoneKind.OFFICE
    active: bool = True
    auto_check_in: bool = True
    auto_check_out: bool = True
    work_window_start: Optional[time] = None
    work_window_end: Optional[time] = None
    # ISO weekdays, 1=Monday .. 7=Sunday. Empty means every day.
    active_weekdays: frozenset[int] = field(default_factory=frozenset)
    loitering_delay_s: Optional[float] = None
    description: Optional[str] = None
    address: Optional[str] = None
    notify_on_entry: bool = True
    notify_on_exit: bool = True
    created_by: Optional[str] = None

    def __post_init__(self):
        require_non_empty(self.zone_id, "zone_id")
        require_non_empty(self.organization_id, "organization_id")
        object.__setattr__(self, "radius_m", require_positive(self.radius_m, "radius_m"))
        object.__setattr__(self, "active_weekdays", require_weekdays(self.active_weekdays))
        if self.loitering_delay_s is not None and float(self.loitering_delay_s) < 0:
            raise ValidationError("loitering_delay_s must not be negative")

    def is_active_on(self, moment: datetime) -> bool:
        if not self.active:
            return False
        return not self.active_weekdays or moment.isoweekday() in self.active_weekdays

    def is_within_work_window(self, moment: datetime) -> bool:
        """Missing bounds are open. A window whose end precedes its start spans midnight."""

        start, end = self.work_window_start, self.work_window_end
        t = moment.time()
        if start is None and end is None:
            return True
        if start is None:
            return t <= end
        if end is None:
            return t >= start
        if start <= end:
            return start <= t <= end
        return t >= start or t <= end

    def with_changes(self, **changes) -> Zone:
        return replace(self, **changes)

    def to_document(self) -> dict[str, Any]:
        return {
            "id": self.zone_id,
            "companyId": self.organization_id,
            "name": self.name,
            "description": self.description,
            "latitude": self.center.latitude,
            "longitude": self.center.longitude,
            "radius": self.radius_m,
            "type": self.kind.value,
            "isActive": self.active,
            "address": self.address,
            "workStartTime": format_time_of_day(self.work_window_start),
            "workEndTime": format_time_of_day(self.work_window_end),
            "workDays": sorted(self.active_weekdays) or None,
            "loiteringDelaySeconds": self.loitering_delay_s,
            "notifyOnEntry": self.notify_on_entry,
            "notifyOnExit": self.notify_on_exit,
            "autoCheckIn": self.auto_check_in,
            "autoCheckOut": self.auto_check_out,
            "createdBy": self.created_by,
        }

    @classmethod
    def from_document(cls, data: dict[str, Any], *, zone_id: str | None = None) -> Zone:
        try:
            kind_value = data.get("type") or ZoneKind.OFFICE.value
            try:
                kind = ZoneKind(kind_value)
            except ValueError:
                kind = ZoneKind.CUSTOM
            return cls(
                zone_id=str(zone_id or data["id"]),
                organization_id=str(data["companyId"]),
                name=str(data.get("name") or ""),
                center=GeoPoint(latitude=data["latitude"], longitude=data["longitude"]),
                radius_m=data["radius"],
                kind=kind,
                active=bool(data.get("isActive", True)),
                auto_check_in=bool(data.get("autoCheckIn", True)),
                auto_check_out=bool(data.get("autoCheckOut", True)),
                work_window_start=parse_time_of_day(data.get("workStartTime")),
                work_window_end=parse_time_of_day(data.get("workEndTime")),
                active_weekdays=frozenset(data.get("workDays") or ()),
                loitering_delay_s=data.get("loiteringDelaySeconds"),
                description=data.get("description"),
                address=data.get("address"),
                notify_on_entry=bool(data.get("notifyOnEntry", True)),
                notify_on_exit=bool(data.get("notifyOnExit", True)),
                created_by=data.get("createdBy"),
            )
        except KeyError as e:
            raise InvalidPayload(f"Zone document is missing field {e}")
        except (TypeError, ValueError) as e:
            raise InvalidPayload(f"Zone document is malformed: {e}")


@dataclass(frozen=True)
class NativeZoneSummary:
    """Zone as reported back by the OS geofencing service."""

    zone_id: str
    latitude: float
    longitude: float
    radius_m: float
