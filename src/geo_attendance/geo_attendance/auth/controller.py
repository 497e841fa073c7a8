from __future__ import annotations

from datetime import timedelta

from flask import Flask, session

from ..common.http import json_body, json_errors, ok
from ..container import Container
from ..core.constants import DEFAULT_IDENTITY_ASSERTION_MAX_AGE_SECONDS
from .assertions import read_assertion


def register(app: Flask, container: Container) -> None:
    # Sign-in happens in the external identity provider. This endpoint binds
    # the identity it signed to the Flask session; nothing the client claims
    # outside the signed assertion is trusted.
    @app.route("/api/session", methods=["POST"], endpoint="open_session")
    @json_errors
    def open_session():
        data = json_body()
        identity = read_assertion(
            app.secret_key,
            data.get("assertion"),
            max_age=float(app.config.get("IDENTITY_ASSERTION_MAX_AGE_SECONDS", DEFAULT_IDENTITY_ASSERTION_MAX_AGE_SECONDS)),
        )

        session.clear()
        session.permanent = bool(data.get("remember"))
        app.permanent_session_lifetime = timedelta(days=7)
        session["user_id"] = identity.employee_id
        session["organization_id"] = identity.organization_id
        session["role"] = identity.role.value
        return ok(employeeId=identity.employee_id, organizationId=identity.organization_id, role=identity.role.value)

    @app.route("/api/session", methods=["DELETE"], endpoint="close_session")
    def close_session():
        employee_id = session.get("user_id")
        if employee_id:
            container.tracking_service.stop(str(employee_id))
        session.clear()
        return ok()
