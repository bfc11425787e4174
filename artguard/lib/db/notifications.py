"""Notification history, kept for auditing only."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from typing import cast

from artguard.lib.db.connection import get_db, storage_errors
from artguard.lib.db.types import NotificationLogRow, to_db_time


class SQLiteNotificationLog:
    async def record(
        self,
        artifact_id: str,
        alert_ids: Sequence[str],
        subject: str,
        sent_at: datetime,
    ) -> None:
        async with storage_errors("record notification"), get_db() as db:
            await db.execute(
                "INSERT INTO notification_log "
                "(artifact_id, alert_ids, subject, sent_at) VALUES (?, ?, ?, ?)",
                (artifact_id, ",".join(alert_ids), subject, to_db_time(sent_at)),
            )

    async def list_for_artifact(
        self, artifact_id: str, limit: int = 50
    ) -> list[NotificationLogRow]:
        """Return the most recent notifications sent for an artifact."""
        async with storage_errors("list notifications"), get_db() as db:
            rows = await db.fetchall(
                "SELECT * FROM notification_log WHERE artifact_id = ? "
                "ORDER BY sent_at DESC, id DESC LIMIT ?",
                (artifact_id, limit),
            )
        return cast(list[NotificationLogRow], rows)
