"""Signed identity assertions.

The external identity provider signs `{employeeId, organizationId, role}` with
the shared secret key; the session endpoint only trusts what verifies.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from ..core.enums import Role
from ..core.exceptions import AuthenticationError

IDENTITY_SALT = "geo-attendance.identity"


@dataclass(frozen=True)
class Identity:
    employee_id: str
    organization_id: str
    role: Role


def _serializer(secret_key: str) -> URLSafeTimedSerializer:
    return URLSafeTimedSerializer(secret_key, salt=IDENTITY_SALT)


def issue_assertion(secret_key: str, employee_id: str, organization_id: str, role: Role = Role.EMPLOYEE) -> str:
    return _serializer(secret_key).dumps(
        {"employeeId": employee_id, "organizationId": organization_id, "role": Role(role).value}
    )


def read_assertion(secret_key: str, token: Any, *, max_age: float) -> Identity:
    if not isinstance(token, str) or not token.strip():
        raise AuthenticationError("Identity assertion is required")
    try:
        claims = _serializer(secret_key).loads(token, max_age=max_age)
    except SignatureExpired:
        raise AuthenticationError("Identity assertion has expired")
    except BadSignature:
        raise AuthenticationError("Identity assertion is not valid")

    employee_id = str(claims.get("employeeId") or "").strip() if isinstance(claims, dict) else ""
    organization_id = str(claims.get("organizationId") or "").strip() if isinstance(claims, dict) else ""
    if not employee_id or not organization_id:
        raise AuthenticationError("Identity assertion is incomplete")
    try:
        role = Role(claims.get("role") or Role.EMPLOYEE.value)
    except ValueError:
        raise AuthenticationError(f"Unknown role {claims.get('role')!r}")
    return Identity(employee_id=employee_id, organization_id=organization_id, role=role)
