"""SQLite-backed alert store."""

from __future__ import annotations

from collections import defaultdict
from datetime import datetime
from typing import Any, cast

from artguard.lib.config import AlertStatus, Bound, Property
from artguard.lib.db.connection import get_db, load_template, storage_errors
from artguard.lib.db.types import AlertRow, from_db_time, to_db_time
from artguard.lib.models import Alert

_COLUMNS = (
    "id",
    "artifact_id",
    "device_id",
    "measurement_id",
    "property",
    "exceeded_bound",
    "measured_value",
    "threshold_value",
    "status",
    "created_at",
    "measured_at",
    "dismissed_at",
)

_INSERT_SQL = (
    f"INSERT INTO alert ({', '.join(_COLUMNS)}) "
    f"VALUES ({', '.join(':' + c for c in _COLUMNS)})"
)


def row_to_alert(row: AlertRow) -> Alert:
    created_at = from_db_time(row["created_at"])
    assert created_at is not None
    return Alert(
        id=row["id"],
        artifact_id=row["artifact_id"],
        device_id=row["device_id"],
        measurement_id=row["measurement_id"],
        property=Property(row["property"]),
        exceeded_bound=Bound(row["exceeded_bound"]),
        measured_value=row["measured_value"],
        threshold_value=row["threshold_value"],
        status=AlertStatus(row["status"]),
        created_at=created_at,
        measured_at=from_db_time(row["measured_at"]),
        dismissed_at=from_db_time(row["dismissed_at"]),
    )


def alert_to_params(alert: Alert) -> dict[str, Any]:
    return {
        "id": alert.id,
        "artifact_id": alert.artifact_id,
        "device_id": alert.device_id,
        "measurement_id": alert.measurement_id,
        "property": alert.property.value,
        "exceeded_bound": alert.exceeded_bound.value,
        "measured_value": alert.measured_value,
        "threshold_value": alert.threshold_value,
        "status": alert.status.value,
        "created_at": to_db_time(alert.created_at),
        "measured_at": (
            to_db_time(alert.measured_at) if alert.measured_at else None
        ),
        "dismissed_at": (
            to_db_time(alert.dismissed_at) if alert.dismissed_at else None
        ),
    }


class SQLiteAlertStore:
    """Alert persistence on top of the shared aiosqlite connection(s).

    Every driver failure surfaces as StorageError. Nothing here retries; the
    caller decides whether a failed operation is resubmitted.
    """

    async def find_by_measurement(
        self, measurement_id: str, prop: Property | None = None
    ) -> Alert | None:
        """Return an alert of any status already created from a measurement."""
        sql = "SELECT * FROM alert WHERE measurement_id = ?"
        params: tuple[Any, ...] = (measurement_id,)
        if prop is not None:
            sql += " AND property = ?"
            params += (prop.value,)
        sql += " ORDER BY created_at DESC LIMIT 1"
        async with storage_errors("find_by_measurement"), get_db() as db:
            row = await db.fetchone(sql, params)
        return row_to_alert(cast(AlertRow, row)) if row else None

    async def find_active_matching(
        self,
        artifact_id: str,
        prop: Property,
        bound: Bound,
        created_after: datetime,
    ) -> list[Alert]:
        """Return active alerts for a key created after a cutoff, newest first."""
        params = {
            "artifact_id": artifact_id,
            "property": prop.value,
            "bound": bound.value,
            "created_after": to_db_time(created_after),
        }
        async with storage_errors("find_active_matching"), get_db() as db:
            rows = await db.fetchall(
                load_template("alert_find_active_matching.sql"), params
            )
        return [row_to_alert(cast(AlertRow, r)) for r in rows]

    async def insert(self, alert: Alert) -> Alert:
        async with storage_errors("insert alert"), get_db() as db:
            await db.execute(_INSERT_SQL, alert_to_params(alert))
        return alert

    async def mark_dismissed(self, alert_id: str, dismissed_at: datetime) -> bool:
        """Dismiss an active alert.

        Returns:
            True only when the row went from active to dismissed. Unknown ids
            and already-dismissed alerts return False.
        """
        async with storage_errors("mark_dismissed"), get_db() as db:
            changed = await db.execute(
                "UPDATE alert SET status = ?, dismissed_at = ? "
                "WHERE id = ? AND status = ?",
                (
                    AlertStatus.DISMISSED.value,
                    to_db_time(dismissed_at),
                    alert_id,
                    AlertStatus.ACTIVE.value,
                ),
            )
        return changed > 0

    async def list_active_grouped_by_artifact(self) -> dict[str, list[Alert]]:
        async with storage_errors("list_active_grouped_by_artifact"), get_db() as db:
            rows = await db.fetchall(
                "SELECT * FROM alert WHERE status = ? "
                "ORDER BY artifact_id, created_at DESC",
                (AlertStatus.ACTIVE.value,),
            )
        grouped: dict[str, list[Alert]] = defaultdict(list)
        for row in rows:
            alert = row_to_alert(cast(AlertRow, row))
            grouped[alert.artifact_id].append(alert)
        return dict(grouped)

    async def get(self, alert_id: str) -> Alert | None:
        async with storage_errors("get alert"), get_db() as db:
            row = await db.fetchone("SELECT * FROM alert WHERE id = ?", (alert_id,))
        return row_to_alert(cast(AlertRow, row)) if row else None

    async def list_alerts(
        self,
        *,
        artifact_id: str | None = None,
        device_id: str | None = None,
        status: AlertStatus | None = None,
        prop: Property | None = None,
        limit: int = 100,
    ) -> list[Alert]:
        """List alerts matching every given filter, newest first."""
        clauses: list[str] = []
        params: list[Any] = []
        for column, value in (
            ("artifact_id", artifact_id),
            ("device_id", device_id),
            ("status", status.value if status else None),
            ("property", prop.value if prop else None),
        ):
            if value is not None:
                clauses.append(f"{column} = ?")
                params.append(value)

        sql = "SELECT * FROM alert"
        if clauses:
            sql += " WHERE " + " AND ".join(clauses)
        sql += " ORDER BY created_at DESC, rowid DESC LIMIT ?"
        params.append(limit)

        async with storage_errors("list_alerts"), get_db() as db:
            rows = await db.fetchall(sql, tuple(params))
        return [row_to_alert(cast(AlertRow, r)) for r in rows]
