"""Type definitions for database operations."""

from datetime import UTC, datetime
from typing import Any, TypedDict

type SQLParams = tuple[Any, ...] | dict[str, Any]
"""SQL parameter types: positional tuple or named dict for query binding."""


class AlertRow(TypedDict):
    """Alert row from the database."""

    id: str
    artifact_id: str
    device_id: str | None
    measurement_id: str | None
    property: str
    exceeded_bound: str
    measured_value: float
    threshold_value: float
    status: str
    created_at: str
    measured_at: str | None
    dismissed_at: str | None


class ArtifactRow(TypedDict):
    """Artifact row from the database."""

    id: str
    name: str
    artist: str
    location: str | None


class NotificationLogRow(TypedDict):
    """Notification history row from the database."""

    id: int
    artifact_id: str
    alert_ids: str
    subject: str
    sent_at: str


def to_db_time(value: datetime) -> str:
    """Serialize a datetime as a fixed-width UTC ISO string.

    Naive datetimes are taken to be UTC. The fixed width keeps lexical order
    equal to chronological order, which the window queries rely on.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).isoformat(timespec="microseconds")


def from_db_time(value: str | None) -> datetime | None:
    """Parse a stored timestamp back into an aware datetime."""
    if value is None:
        return None
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed
