from __future__ import annotations

import uuid

from flask import Flask

from ..common.http import (
    admin_required,
    current_organization_id,
    current_user_id,
    error,
    json_body,
    json_errors,
    login_required,
    ok,
)
from ..container import Container
from ..core.exceptions import AuthorizationError
from .model import Zone


def register(app: Flask, container: Container) -> None:
    registry = container.zone_registry

    def _own_zone(zone_id: str) -> Zone:
        zone = registry.get(zone_id)
        if zone.organization_id != current_organization_id():
            raise AuthorizationError("Zone belongs to another organization")
        return zone

    @app.route("/api/zones", methods=["GET"], endpoint="list_zones")
    @login_required
    @json_errors
    def list_zones():
        zones = registry.list(current_organization_id())
        return ok(zones=[z.to_document() for z in zones])

    @app.route("/api/zones/<zone_id>", methods=["GET"], endpoint="get_zone")
    @login_required
    @json_errors
    def get_zone(zone_id: str):
        return ok(zone=_own_zone(zone_id).to_document())

    @app.route("/api/zones", methods=["POST"], endpoint="create_zone")
    @admin_required
    @json_errors
    def create_zone():
        data = json_body()
        data["id"] = str(data.get("id") or uuid.uuid4())
        data["companyId"] = current_organization_id()
        data["createdBy"] = current_user_id()
        zone = registry.upsert(Zone.from_document(data))
        return ok(201, zone=zone.to_document())

    @app.route("/api/zones/<zone_id>", methods=["PUT", "PATCH"], endpoint="update_zone")
    @admin_required
    @json_errors
    def update_zone(zone_id: str):
        current = _own_zone(zone_id).to_document()
        current.update(json_body())
        current["id"] = zone_id
        current["companyId"] = current_organization_id()
        zone = registry.upsert(Zone.from_document(current))
        return ok(zone=zone.to_document())

    @app.route("/api/zones/<zone_id>", methods=["DELETE"], endpoint="delete_zone")
    @admin_required
    @json_errors
    def delete_zone(zone_id: str):
        _own_zone(zone_id)
        registry.remove(zone_id)
        return ok(message="Zone deleted")

    @app.route("/api/zones/refresh", methods=["POST"], endpoint="refresh_zones")
    @admin_required
    @json_errors
    def refresh_zones():
        organization_id = current_organization_id()
        if not registry.refresh(organization_id):
            return error("Zone store is unreachable; keeping the last known zones", 503)
        registered = registry.register_all(organization_id)
        return ok(zones=len(registry.list(organization_id)), registered=registered)

    @app.route("/api/zones/native", methods=["GET"], endpoint="native_zones")
    @admin_required
    @json_errors
    def native_zones():
        zones = registry.native_zones()
        return ok(
            zones=[{"id": z.zone_id, "latitude": z.latitude, "longitude": z.longitude} for z in zones],
            permissionDegraded=registry.permission_degraded,
        )
