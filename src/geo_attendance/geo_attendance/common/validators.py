from __future__ import annotations

import math

from ..core.exceptions import ValidationError


def require_non_empty(value: str, field_name: str) -> str:
    if not value or not str(value).strip():
        raise ValidationError(f"{field_name} must not be empty")
    return str(value).strip()


def require_positive(value, field_name: str) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be a number")
    if math.isnan(number) or number <= 0:
        raise ValidationError(f"{field_name} must be greater than 0")
    return number


def require_weekdays(values) -> frozenset[int]:
    days = frozenset(int(v) for v in (values or ()))
    bad = [d for d in days if d < 1 or d > 7]
    if bad:
        raise ValidationError(f"Weekdays must be in 1..7, got {sorted(bad)}")
    return days
