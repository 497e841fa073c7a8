from __future__ import annotations

from flask import Flask

from ..common.http import json_body, json_errors, login_required, ok
from ..container import Container
from ..core.exceptions import ValidationError


def register(app: Flask, container: Container) -> None:
    queue = container.sync_queue
    scheduler = container.sync_scheduler

    @app.route("/api/sync/status", methods=["GET"], endpoint="sync_status")
    @login_required
    @json_errors
    def sync_status():
        return ok(
            state=scheduler.state.value,
            online=scheduler.online,
            pending=queue.pending_count(),
            byCollection=queue.stats(),
            lastSyncAt=queue.last_synced_at.isoformat() if queue.last_synced_at else None,
        )

    @app.route("/api/sync/flush", methods=["POST"], endpoint="sync_flush")
    @login_required
    @json_errors
    def sync_flush():
        result = scheduler.flush_now()
        return ok(result=result.to_dict(), state=scheduler.state.value)

    @app.route("/api/sync/connectivity", methods=["POST"], endpoint="sync_connectivity")
    @login_required
    @json_errors
    def sync_connectivity():
        online = json_body().get("online")
        if not isinstance(online, bool):
            raise ValidationError("online must be true or false")
        triggered = scheduler.set_online(online)
        return ok(online=scheduler.online, flushTriggered=triggered)
