"""Shared helpers for the JSON controllers."""

from __future__ import annotations

import logging
from functools import wraps
from typing import Any, Mapping, Optional

from flask import jsonify, request, session

from ..core.enums import Role
from ..core.exceptions import AuthenticationError, AuthorizationError, DomainError, NotFoundError, ValidationError
from ..geo.model import GeoPoint

logger = logging.getLogger(__name__)


def error(message: str, status: int):
    return jsonify({"success": False, "message": message}), status


def ok(code: int = 200, /, **payload: Any):
    # `code` is positional-only so payload keys such as `status` stay in the body.
    return jsonify({"success": True, **payload}), code


def json_errors(view):
    """Map domain exceptions raised by a view to JSON error responses."""

    @wraps(view)
    def wrapper(*args, **kwargs):
        try:
            return view(*args, **kwargs)
        except ValidationError as e:
            return error(str(e), 400)
        except AuthenticationError as e:
            return error(str(e), 401)
        except AuthorizationError as e:
            return error(str(e), 403)
        except NotFoundError as e:
            return error(str(e), 404)
        except DomainError as e:
            return error(str(e), 409)
        except Exception:
            logger.exception("Unhandled error in %s", view.__name__)
            return error("Internal server error", 500)

    return wrapper


def login_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        if "user_id" not in session:
            return error("Please sign in to continue", 401)
        return view(*args, **kwargs)

    return wrapper


def admin_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        if "user_id" not in session:
            return error("Please sign in to continue", 401)
        if session.get("role") != Role.ADMIN.value:
            return error("Administrator role required", 403)
        return view(*args, **kwargs)

    return wrapper


def current_user_id() -> str:
    return str(session["user_id"])


def current_organization_id() -> str:
    return str(session.get("organization_id") or "")


def current_role() -> Role:
    try:
        return Role(session.get("role"))
    except ValueError:
        return Role.EMPLOYEE


def json_body() -> dict[str, Any]:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def location_from(data: Mapping[str, Any]) -> Optional[GeoPoint]:
    """Optional latitude/longitude pair; one without the other is rejected."""

    lat, lon = data.get("latitude"), data.get("longitude")
    if lat is None and lon is None:
        return None
    if lat is None or lon is None:
        raise ValidationError("latitude and longitude must be sent together")
    return GeoPoint(lat, lon)


def optional_float(data: Mapping[str, Any], key: str) -> Optional[float]:
    value = data.get(key)
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{key} must be a number")
