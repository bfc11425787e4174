"""Notification dispatch service.

Runs a dispatch cycle every ``DISPATCH_INTERVAL_SEC`` seconds. When the event
bus is enabled it also listens to alert events: a created alert triggers an
immediate cycle, a dismissed alert clears that artifact's rate limit (the
dismissal may have happened in another process).
"""

import asyncio
from contextlib import suppress
from typing import Any

import redis

from artguard.lib.components import create_dispatcher, create_rate_limiter
from artguard.lib.config import get_settings
from artguard.lib.db import close_db, init_db
from artguard.lib.dispatcher import NotificationDispatcher
from artguard.lib.eventbus import AlertEventKind, EventSubscriber, Topic
from artguard.lib.ratelimit import RateLimiter
from artguard.logging import get_logger

logger = get_logger("dispatch")

_RECONNECT_DELAY_SEC = 5.0


async def run_cycles(
    dispatcher: NotificationDispatcher,
    trigger: asyncio.Event,
    interval_sec: float,
) -> None:
    """Dispatch forever, waking on the interval or on ``trigger``."""
    while True:
        trigger.clear()
        try:
            await dispatcher.dispatch()
        except Exception:
            logger.exception("Dispatch cycle failed")
        with suppress(TimeoutError):
            await asyncio.wait_for(trigger.wait(), timeout=interval_sec)


def handle_event(
    data: dict[str, Any], trigger: asyncio.Event, rate_limiter: RateLimiter
) -> None:
    """Apply one alert event from the bus."""
    try:
        kind = AlertEventKind(data["event"])
        artifact_id = data["artifact_id"]
    except (KeyError, ValueError):
        logger.warning("Ignoring malformed alert event: %s", data)
        return

    if kind == AlertEventKind.CREATED:
        trigger.set()
    elif kind == AlertEventKind.DISMISSED:
        rate_limiter.clear(artifact_id)


async def listen(trigger: asyncio.Event, rate_limiter: RateLimiter) -> None:
    """Consume alert events, reconnecting after Redis failures."""
    while True:
        try:
            async with EventSubscriber(topics=[Topic.ALERT]) as subscriber:
                async for _topic, data in subscriber.receive():
                    handle_event(data, trigger, rate_limiter)
        except (redis.RedisError, OSError) as e:
            logger.warning(
                "Event bus unavailable (%s), retrying in %.0fs",
                e,
                _RECONNECT_DELAY_SEC,
            )
        await asyncio.sleep(_RECONNECT_DELAY_SEC)


async def run() -> None:
    """Run the dispatch service."""
    settings = get_settings()
    await init_db()
    rate_limiter = create_rate_limiter()
    dispatcher = create_dispatcher(rate_limiter)
    trigger = asyncio.Event()

    tasks = [
        asyncio.create_task(
            run_cycles(dispatcher, trigger, settings.dispatch.interval_sec)
        )
    ]
    if settings.eventbus.enabled:
        tasks.append(asyncio.create_task(listen(trigger, rate_limiter)))

    logger.info(
        "Dispatch service started (interval %ds, event bus %s)",
        settings.dispatch.interval_sec,
        "on" if settings.eventbus.enabled else "off",
    )
    try:
        await asyncio.gather(*tasks)
    finally:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        await close_db()
