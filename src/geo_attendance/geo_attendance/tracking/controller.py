from __future__ import annotations

from flask import Flask

from ..common.http import current_organization_id, current_user_id, json_body, json_errors, login_required, ok
from ..container import Container
from ..core.exceptions import InvalidPayload, NotFoundError
from .model import PositionSample


def register(app: Flask, container: Container) -> None:
    tracking = container.tracking_service

    def _ensure_started(employee_id: str) -> None:
        try:
            tracking.membership(employee_id)
        except NotFoundError:
            tracking.start(employee_id, current_organization_id())

    @app.route("/api/tracking/start", methods=["POST"], endpoint="start_tracking")
    @login_required
    @json_errors
    def start_tracking():
        tracking.start(current_user_id(), current_organization_id())
        return ok(status=tracking.status().to_dict(), sampleIntervalSeconds=container.sample_interval_s)

    @app.route("/api/tracking/samples", methods=["POST"], endpoint="ingest_samples")
    @login_required
    @json_errors
    def ingest_samples():
        """Accept one sample object or {"samples": [...]} in capture order."""

        data = json_body()
        raw = data.get("samples", [data])
        if not isinstance(raw, list) or not raw:
            raise InvalidPayload("samples must be a non-empty list")
        samples = [PositionSample.from_payload(item) for item in raw]

        employee_id = current_user_id()
        _ensure_started(employee_id)
        events = []
        for sample in samples:
            events.extend(tracking.ingest(employee_id, sample))
        state = tracking.membership(employee_id)
        return ok(
            processed=len(samples),
            events=[
                {"zoneId": e.zone_id, "type": e.kind.value, "timestamp": e.occurred_at.isoformat(), "lowConfidence": e.low_confidence}
                for e in events
            ],
            membership={"phase": state.phase.value, "zoneId": state.zone_id},
        )

    @app.route("/api/tracking/native-events", methods=["POST"], endpoint="native_event")
    @login_required
    @json_errors
    def native_event():
        payload = json_body()
        payload["employeeId"] = current_user_id()
        event = tracking.handle_native_event(payload)
        if event is None:
            return ok(accepted=False)
        return ok(202, accepted=True, zoneId=event.zone_id, type=event.kind.value)

    @app.route("/api/tracking/permission", methods=["POST"], endpoint="position_permission")
    @login_required
    @json_errors
    def position_permission():
        tracking.mark_position_permission(bool(json_body().get("granted", False)))
        return ok(status=tracking.status().to_dict())

    @app.route("/api/tracking/status", methods=["GET"], endpoint="tracking_status")
    @login_required
    @json_errors
    def tracking_status():
        return ok(status=tracking.status().to_dict())
