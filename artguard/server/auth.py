"""Bearer-token authentication for scheduler-triggered endpoints."""

import secrets
from collections.abc import Awaitable, Callable
from functools import wraps

from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from artguard.lib.config import get_settings


def _bearer_token(request: Request) -> str | None:
    auth_header = request.headers.get("Authorization", "")
    if not auth_header.startswith("Bearer "):
        return None
    return auth_header[7:].strip() or None


def require_cron_secret[R: Response](
    handler: Callable[[Request], Awaitable[R]],
) -> Callable[[Request], Awaitable[Response]]:
    """Decorator requiring ``Authorization: Bearer <CRON_SECRET>``.

    Responds 503 while no secret is configured, so the endpoint is never
    open by accident.
    """

    @wraps(handler)
    async def wrapper(request: Request) -> Response:
        secret = get_settings().cron_secret.get_secret_value()
        if not secret:
            return JSONResponse(
                {"error": "CRON_SECRET not configured"}, status_code=503
            )

        token = _bearer_token(request)
        if token is None or not secrets.compare_digest(token, secret):
            return JSONResponse({"error": "Unauthorized"}, status_code=401)

        return await handler(request)

    return wrapper
