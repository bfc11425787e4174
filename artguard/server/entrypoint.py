"""Application factory for the web server."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from starlette.applications import Starlette
from starlette.routing import Route

from artguard.lib.components import (
    create_dispatcher,
    create_engine,
    create_rate_limiter,
)
from artguard.lib.db import close_db, get_db
from artguard.lib.db.connection import create_schema
from artguard.lib.eventbus import get_publisher, reset_publisher
from artguard.logging import configure, get_logger

from .api.alerts import check_alerts, get_alert, list_alerts, update_alert
from .api.health import health_check
from .api.measurements import submit_measurement

_logger = get_logger("server.entrypoint")


@asynccontextmanager
async def lifespan(app: Starlette) -> AsyncIterator[None]:
    """Build the engine and dispatcher, tear down connections on shutdown.

    Both share one rate limiter, so a dismissal through this server lets the
    next on-demand check notify right away.
    """
    async with get_db() as db:
        await create_schema(db)

    rate_limiter = create_rate_limiter()
    app.state.engine = create_engine(rate_limiter, publisher=get_publisher())
    app.state.dispatcher = create_dispatcher(rate_limiter)
    _logger.info("Alert engine ready")
    try:
        yield
    finally:
        reset_publisher()
        await close_db()


def create_app() -> Starlette:
    """Create and configure the Starlette application.

    Database connections are taken per-request from the pool via get_db().

    Returns:
        Configured Starlette application instance.
    """
    configure()

    routes = [
        Route("/health", health_check),
        Route("/api/alerts", list_alerts),
        Route("/api/alerts/check", check_alerts, methods=["POST"]),
        Route("/api/alerts/{alert_id}", get_alert),
        Route("/api/alerts/{alert_id}", update_alert, methods=["PATCH"]),
        Route("/api/measurements", submit_measurement, methods=["POST"]),
    ]

    return Starlette(routes=routes, lifespan=lifespan)
