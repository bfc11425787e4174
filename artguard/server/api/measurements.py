"""Measurement ingestion endpoint."""

import json

from starlette.requests import Request
from starlette.responses import JSONResponse

from artguard.lib.engine import AlertEngine
from artguard.server.api.alerts import alert_to_dict
from artguard.server.validators import InvalidParameter, MeasurementIn, parse_body


async def submit_measurement(request: Request) -> JSONResponse:
    """Evaluate a measurement and return the alerts it maps to.

    Responds 503 when storage failed; the measurement can then be resubmitted
    unchanged without creating duplicate alerts.
    """
    try:
        body = parse_body(MeasurementIn, await request.json())
    except (json.JSONDecodeError, InvalidParameter) as e:
        return JSONResponse({"error": str(e)}, status_code=400)

    engine: AlertEngine = request.app.state.engine
    result = await engine.evaluate(body.to_measurement())
    if not result.ok:
        return JSONResponse(
            {"error": "Storage unavailable, retry later"}, status_code=503
        )

    created = {a.id for a in result.created}
    return JSONResponse(
        {
            "alerts": [
                alert_to_dict(a) | {"created": a.id in created}
                for a in result.alerts
            ]
        },
        status_code=201 if created else 200,
    )
