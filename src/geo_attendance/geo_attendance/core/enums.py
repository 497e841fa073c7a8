from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """User role used for authorization checks."""

    ADMIN = "admin"
    EMPLOYEE = "employee"


class ZoneKind(str, Enum):
    OFFICE = "office"
    BRANCH = "branch"
    WAREHOUSE = "warehouse"
    CLIENT_SITE = "clientSite"
    CUSTOM = "custom"


class TransitionKind(str, Enum):
    """Confirmed membership change of a subject relative to a zone."""

    ENTER = "enter"
    EXIT = "exit"
    DWELL = "dwell"


class MembershipPhase(str, Enum):
    OUTSIDE = "outside"
    PENDING_ENTER = "pending_enter"
    INSIDE = "inside"
    PENDING_EXIT = "pending_exit"


class AttendanceStatus(str, Enum):
    """Normalized attendance status stored in the `attendance` collection."""

    NOT_CHECKED_IN = "notCheckedIn"
    CHECKED_IN = "checkedIn"
    CHECKED_OUT = "checkedOut"
    ABSENT = "absent"
    HALF_DAY = "halfDay"
    ON_BREAK = "onBreak"


class CheckInMethod(str, Enum):
    AUTOMATIC = "automatic"
    MANUAL = "manual"
    QR_CODE = "qrCode"


class AttendanceAction(str, Enum):
    """What the attendance state machine decided to do with an event."""

    NONE = "none"
    CHECK_IN = "check_in"
    CHECK_OUT = "check_out"


class SyncState(str, Enum):
    IDLE = "idle"
    SYNCING = "syncing"
    ERROR = "error"
    COMPLETED = "completed"
