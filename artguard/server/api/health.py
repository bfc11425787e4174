"""Health check endpoint for monitoring service status."""

import asyncio
from datetime import UTC, datetime

import redis.asyncio as redis
from starlette.requests import Request
from starlette.responses import JSONResponse

from artguard.lib.config import get_settings
from artguard.lib.db import get_db
from artguard.lib.db.connection import storage_errors
from artguard.lib.exceptions import StorageError
from artguard.logging import get_logger

logger = get_logger("server.api.health")


async def _check_database() -> tuple[bool, str]:
    """Check if database is accessible."""
    try:
        async with storage_errors("health check"), get_db() as db:
            await db.fetchone("SELECT 1")
        return True, "ok"
    except StorageError as e:
        logger.error("Database health check failed: %s", e)
        return False, str(e)


async def _check_redis() -> tuple[bool, str]:
    """Check if Redis is accessible, when the event bus uses it."""
    eventbus = get_settings().eventbus
    if not eventbus.enabled:
        return True, "disabled"
    client = redis.from_url(eventbus.redis_url)
    try:
        await client.ping()
        return True, "ok"
    except (redis.RedisError, OSError) as e:
        logger.error("Redis health check failed: %s", e)
        return False, str(e)
    finally:
        await client.aclose()


async def health_check(request: Request) -> JSONResponse:
    """Return health status of the application and its dependencies."""
    (db_ok, db_status), (redis_ok, redis_status) = await asyncio.gather(
        _check_database(), _check_redis()
    )
    is_healthy = db_ok and redis_ok

    return JSONResponse(
        {
            "status": "healthy" if is_healthy else "unhealthy",
            "timestamp": datetime.now(UTC).isoformat(),
            "checks": {
                "database": {"ok": db_ok, "status": db_status},
                "redis": {"ok": redis_ok, "status": redis_status},
            },
        },
        status_code=200 if is_healthy else 503,
    )
