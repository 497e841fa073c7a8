from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, Mapping, Optional

from ..common.datetime_utils import parse_iso_datetime, to_local_naive
from ..core.enums import MembershipPhase, TransitionKind
from ..core.exceptions import InvalidPayload, ValidationError
from ..geo.model import GeoPoint, validate_coordinate


def _optional_float(payload: Mapping[str, Any], *keys: str) -> Optional[float]:
    for key in keys:
        value = payload.get(key)
        if value is not None:
            try:
                return float(value)
            except (TypeError, ValueError):
                raise InvalidPayload(f"{key} must be a number")
    return None


def _timestamp(value: Any) -> datetime:
    # Everything downstream compares naive local times.
    if isinstance(value, datetime):
        return to_local_naive(value)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        # Native bridges send epoch milliseconds.
        return datetime.fromtimestamp(value / 1000)
    try:
        return to_local_naive(parse_iso_datetime(value))
    except ValidationError as e:
        raise InvalidPayload(str(e))


@dataclass(frozen=True)
class PositionSample:
    """One position fix from the location provider. Immutable."""

    latitude: float
    longitude: float
    horizontal_accuracy_m: float
    captured_at: datetime
    altitude_m: Optional[float] = None
    speed_mps: Optional[float] = None
    heading_deg: Optional[float] = None
    is_simulated: bool = False

    def __post_init__(self):
        lat, lon = validate_coordinate(self.latitude, self.longitude)
        object.__setattr__(self, "latitude", lat)
        object.__setattr__(self, "longitude", lon)
        if self.horizontal_accuracy_m is None or float(self.horizontal_accuracy_m) < 0:
            raise InvalidPayload("horizontal_accuracy_m must be a non-negative number")

    @property
    def point(self) -> GeoPoint:
        return GeoPoint(self.latitude, self.longitude)

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> PositionSample:
        """Validate a loosely-typed boundary message (native bridge or HTTP)."""

        if not isinstance(payload, Mapping):
            raise InvalidPayload("position sample must be an object")
        missing = [k for k in ("latitude", "longitude") if payload.get(k) is None]
        captured = payload.get("capturedAt", payload.get("timestamp"))
        if captured is None:
            missing.append("capturedAt")
        if missing:
            raise InvalidPayload(f"position sample is missing {', '.join(missing)}")
        accuracy = _optional_float(payload, "horizontalAccuracy", "accuracy")
        return cls(
            latitude=payload["latitude"],
            longitude=payload["longitude"],
            horizontal_accuracy_m=0.0 if accuracy is None else accuracy,
            captured_at=_timestamp(captured),
            altitude_m=_optional_float(payload, "altitude"),
            speed_mps=_optional_float(payload, "speed"),
            heading_deg=_optional_float(payload, "heading"),
            is_simulated=bool(payload.get("isSimulated", payload.get("isMocked", False))),
        )

    def to_document(self, *, employee_id: str) -> dict[str, Any]:
        return {
            "employeeId": employee_id,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "accuracy": self.horizontal_accuracy_m,
            "altitude": self.altitude_m,
            "speed": self.speed_mps,
            "heading": self.heading_deg,
            "timestamp": self.captured_at.isoformat(),
            "isMocked": self.is_simulated,
        }


@dataclass(frozen=True)
class MembershipState:
    """Per-subject detector state. At most one confirmed zone at a time."""

    phase: MembershipPhase = MembershipPhase.OUTSIDE
    zone_id: Optional[str] = None
    since: Optional[datetime] = None
    entered_at: Optional[datetime] = None
    dwell_emitted: bool = False
    last_sample_at: Optional[datetime] = None

    @property
    def current_zone_id(self) -> Optional[str]:
        if self.phase in (MembershipPhase.INSIDE, MembershipPhase.PENDING_EXIT):
            return self.zone_id
        return None

    def with_changes(self, **changes) -> MembershipState:
        return replace(self, **changes)


OUTSIDE = MembershipState()


@dataclass(frozen=True)
class TransitionEvent:
    employee_id: str
    zone_id: str
    kind: TransitionKind
    occurred_at: datetime
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    low_confidence: bool = False

    @property
    def location(self) -> Optional[GeoPoint]:
        if self.latitude is None or self.longitude is None:
            return None
        return GeoPoint(self.latitude, self.longitude)

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any], *, employee_id: str | None = None) -> TransitionEvent:
        """Parse a tagged event from the native geofencing bridge."""

        if not isinstance(payload, Mapping):
            raise InvalidPayload("transition event must be an object")
        zone_id = payload.get("geofenceId") or payload.get("zoneId")
        subject = employee_id or payload.get("employeeId")
        if not zone_id or not subject:
            raise InvalidPayload("transition event needs geofenceId and employeeId")
        try:
            kind = TransitionKind(str(payload.get("type", "")).lower())
        except ValueError:
            raise InvalidPayload(f"unknown transition type {payload.get('type')!r}")
        if payload.get("timestamp") is None:
            raise InvalidPayload("transition event is missing timestamp")

        lat = _optional_float(payload, "latitude")
        lon = _optional_float(payload, "longitude")
        if lat is not None and lon is not None:
            validate_coordinate(lat, lon)
        return cls(
            employee_id=str(subject),
            zone_id=str(zone_id),
            kind=kind,
            occurred_at=_timestamp(payload["timestamp"]),
            latitude=lat,
            longitude=lon,
            low_confidence=bool(payload.get("lowConfidence", False)),
        )


@dataclass(frozen=True)
class TrackingStatus:
    """What the UI shows so a human can tell tracking is impaired."""

    tracking: bool
    permission_degraded: bool
    last_sync_at: Optional[datetime]
    pending_writes: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "tracking": self.tracking,
            "permissionDegraded": self.permission_degraded,
            "lastSyncAt": self.last_sync_at.isoformat() if self.last_sync_at else None,
            "pendingWrites": self.pending_writes,
        }
