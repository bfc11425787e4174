"""Factories wiring the engine and dispatcher to the configured backends."""

from artguard.lib.config import get_settings
from artguard.lib.db import (
    SQLiteAlertStore,
    SQLiteArtifactStore,
    SQLiteNotificationLog,
)
from artguard.lib.dispatcher import NotificationDispatcher
from artguard.lib.engine import AlertEngine
from artguard.lib.eventbus import EventPublisher
from artguard.lib.notifications import AbstractNotifier, get_notifier
from artguard.lib.ratelimit import RateLimiter


def create_rate_limiter() -> RateLimiter:
    return RateLimiter(get_settings().dispatch.threshold_minutes)


def create_engine(
    rate_limiter: RateLimiter, publisher: EventPublisher | None = None
) -> AlertEngine:
    return AlertEngine(
        SQLiteAlertStore(),
        SQLiteArtifactStore(),
        rate_limiter,
        publisher=publisher,
    )


def send_timeout_sec() -> float:
    """Upper bound for one send including every retry and backoff."""
    cfg = get_settings().notifications
    backoff = sum(
        cfg.initial_backoff_sec * 2**attempt
        for attempt in range(cfg.max_retries - 1)
    )
    return cfg.timeout_sec * cfg.max_retries + backoff


def create_dispatcher(
    rate_limiter: RateLimiter, notifier: AbstractNotifier | None = None
) -> NotificationDispatcher:
    return NotificationDispatcher(
        SQLiteAlertStore(),
        notifier or get_notifier(),
        rate_limiter,
        artifacts=SQLiteArtifactStore(),
        log=SQLiteNotificationLog(),
        send_timeout_sec=send_timeout_sec(),
    )
