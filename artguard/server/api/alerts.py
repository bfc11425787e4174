"""Alert API endpoints: list, fetch, dismiss and on-demand dispatch."""

import json
from typing import Any

from starlette.requests import Request
from starlette.responses import JSONResponse

from artguard.lib.db import SQLiteAlertStore
from artguard.lib.dispatcher import NotificationDispatcher
from artguard.lib.engine import AlertEngine
from artguard.lib.exceptions import StorageError
from artguard.lib.models import Alert
from artguard.logging import get_logger
from artguard.server.auth import require_cron_secret
from artguard.server.validators import (
    AlertUpdate,
    InvalidParameter,
    parse_alerts_query,
    parse_body,
)

logger = get_logger("server.api.alerts")

_store = SQLiteAlertStore()


def alert_to_dict(alert: Alert) -> dict[str, Any]:
    return {
        "id": alert.id,
        "artifact_id": alert.artifact_id,
        "device_id": alert.device_id,
        "measurement_id": alert.measurement_id,
        "property": alert.property.value,
        "label": alert.property.label,
        "unit": alert.property.unit.value,
        "exceeded_bound": alert.exceeded_bound.value,
        "measured_value": alert.measured_value,
        "threshold_value": alert.threshold_value,
        "status": alert.status.value,
        "created_at": alert.created_at.isoformat(),
        "measured_at": (
            alert.measured_at.isoformat() if alert.measured_at else None
        ),
        "dismissed_at": (
            alert.dismissed_at.isoformat() if alert.dismissed_at else None
        ),
    }


def _storage_unavailable(e: StorageError) -> JSONResponse:
    logger.error("Alert storage unavailable: %s", e)
    return JSONResponse({"error": "Storage unavailable"}, status_code=503)


async def list_alerts(request: Request) -> JSONResponse:
    """List alerts, newest first, filtered by query parameters."""
    try:
        query = parse_alerts_query(request.query_params)
    except InvalidParameter as e:
        return JSONResponse({"error": str(e)}, status_code=400)

    try:
        alerts = await _store.list_alerts(
            artifact_id=query.artifact_id,
            device_id=query.device_id,
            status=query.status,
            prop=query.prop,
            limit=query.limit,
        )
    except StorageError as e:
        return _storage_unavailable(e)

    return JSONResponse({"alerts": [alert_to_dict(a) for a in alerts]})


async def get_alert(request: Request) -> JSONResponse:
    alert_id = request.path_params["alert_id"]
    try:
        alert = await _store.get(alert_id)
    except StorageError as e:
        return _storage_unavailable(e)
    if alert is None:
        return JSONResponse({"error": "Alert not found"}, status_code=404)
    return JSONResponse(alert_to_dict(alert))


async def update_alert(request: Request) -> JSONResponse:
    """Dismiss an alert: ``{"status": "dismissed"}``.

    Dismissing an already dismissed alert is a no-op and returns it as is.
    """
    alert_id = request.path_params["alert_id"]
    try:
        parse_body(AlertUpdate, await request.json())
    except (json.JSONDecodeError, InvalidParameter) as e:
        return JSONResponse({"error": str(e)}, status_code=400)

    engine: AlertEngine = request.app.state.engine
    try:
        await engine.dismiss(alert_id)
        alert = await _store.get(alert_id)
    except StorageError as e:
        return _storage_unavailable(e)

    if alert is None:
        return JSONResponse({"error": "Alert not found"}, status_code=404)
    return JSONResponse(alert_to_dict(alert))


@require_cron_secret
async def check_alerts(request: Request) -> JSONResponse:
    """Run one notification dispatch cycle."""
    dispatcher: NotificationDispatcher = request.app.state.dispatcher
    report = await dispatcher.dispatch()
    return JSONResponse(report.to_dict(), status_code=200 if report.ok else 503)
