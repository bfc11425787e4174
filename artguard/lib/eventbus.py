"""Redis-based event bus for alert lifecycle events.

Provides pub/sub messaging between the alert engine (publisher) and the
dispatch service (subscriber), so a notification cycle can run as soon as new
alerts exist instead of waiting for the next interval.
"""

import json
from collections.abc import AsyncIterator
from dataclasses import dataclass
from enum import StrEnum
from typing import Any, Literal, Self

import redis
import redis.asyncio as aioredis

from artguard.lib.config import get_settings
from artguard.lib.db.types import to_db_time
from artguard.lib.models import Alert
from artguard.logging import get_logger

logger = get_logger("lib.eventbus")


class Topic(StrEnum):
    """Event bus topics."""

    ALERT = "alert"


class AlertEventKind(StrEnum):
    CREATED = "created"
    DISMISSED = "dismissed"


@dataclass(frozen=True, slots=True)
class AlertEventPayload:
    """An alert was opened or dismissed."""

    kind: AlertEventKind
    alert: Alert

    @property
    def event_type(self) -> Literal["alert"]:
        return "alert"

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.event_type,
            "event": self.kind.value,
            "alert_id": self.alert.id,
            "artifact_id": self.alert.artifact_id,
            "property": self.alert.property.value,
            "bound": self.alert.exceeded_bound.value,
            "measured_value": self.alert.measured_value,
            "threshold_value": self.alert.threshold_value,
            "created_at": to_db_time(self.alert.created_at),
        }


class EventPublisher:
    """Publishes alert events to the event bus.

    Publishing is best-effort: the alert is already stored, so a Redis outage
    only delays notification until the next periodic dispatch.
    """

    def __init__(self) -> None:
        self._redis_url = get_settings().eventbus.redis_url
        self._client: redis.Redis | None = None

    @property
    def is_connected(self) -> bool:
        return self._client is not None

    def connect(self) -> None:
        """Connect to Redis."""
        self._client = redis.from_url(self._redis_url)
        logger.info("Event publisher connected to Redis")

    def publish(self, topic: Topic, event: AlertEventPayload) -> bool:
        """Publish an event. Returns False when it could not be delivered."""
        if self._client is None:
            return False

        message = json.dumps(event.to_dict())
        try:
            self._client.publish(topic, message)
        except redis.RedisError as e:
            logger.warning("Failed to publish to %s: %s", topic, e)
            return False
        logger.debug("Published to %s: %s", topic, message)
        return True

    def close(self) -> None:
        """Close the publisher connection."""
        if self._client is not None:
            self._client.close()
            self._client = None
        logger.info("Event publisher closed")


class EventSubscriber:
    """Subscribes to alert events from the event bus."""

    def __init__(self, topics: list[Topic] | None = None) -> None:
        self._redis_url = get_settings().eventbus.redis_url
        self._topics = topics or list(Topic)
        self._client: aioredis.Redis | None = None
        self._pubsub: aioredis.client.PubSub | None = None

    async def connect(self) -> None:
        """Connect to Redis and subscribe to topics."""
        self._client = aioredis.from_url(self._redis_url)
        self._pubsub = self._client.pubsub()
        await self._pubsub.subscribe(*self._topics)
        logger.info(
            "Event subscriber connected to Redis, topics: %s", self._topics
        )

    async def receive(self) -> AsyncIterator[tuple[Topic, dict[str, Any]]]:
        """Async iterator that yields (topic, data) tuples as they arrive."""
        if self._pubsub is None:
            return

        async for message in self._pubsub.listen():
            if message["type"] != "message":
                continue

            try:
                topic = Topic(message["channel"].decode())
                data = json.loads(message["data"].decode())
            except (ValueError, UnicodeDecodeError) as e:
                logger.warning("Invalid message: %s", e)
                continue
            yield topic, data

    async def close(self) -> None:
        """Close the subscriber connection."""
        if self._pubsub is not None:
            await self._pubsub.unsubscribe()
            await self._pubsub.aclose()
            self._pubsub = None
        if self._client is not None:
            await self._client.aclose()
            self._client = None
        logger.info("Event subscriber closed")

    async def __aenter__(self) -> Self:
        await self.connect()
        return self

    async def __aexit__(self, *_: object) -> None:
        await self.close()


_publisher: EventPublisher | None = None


def get_publisher() -> EventPublisher:
    """Get or create the global publisher instance.

    The publisher stays disconnected (publish is a no-op) unless the event
    bus is enabled in settings.
    """
    global _publisher
    if _publisher is None:
        _publisher = EventPublisher()
        if get_settings().eventbus.enabled:
            _publisher.connect()
    return _publisher


def reset_publisher() -> None:
    """Close and drop the global publisher."""
    global _publisher
    if _publisher is not None:
        _publisher.close()
        _publisher = None
