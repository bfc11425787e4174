"""Storage contracts the engine depends on.

The engine and dispatcher only see these protocols; the SQLite classes in
artguard.lib.db satisfy them structurally.
"""

from collections.abc import Sequence
from datetime import datetime
from typing import Protocol

from artguard.lib.config import Bound, Property
from artguard.lib.models import Alert, Artifact


class AlertStore(Protocol):
    async def find_by_measurement(
        self, measurement_id: str, prop: Property | None = None
    ) -> Alert | None: ...

    async def find_active_matching(
        self,
        artifact_id: str,
        prop: Property,
        bound: Bound,
        created_after: datetime,
    ) -> list[Alert]: ...

    async def insert(self, alert: Alert) -> Alert: ...

    async def mark_dismissed(
        self, alert_id: str, dismissed_at: datetime
    ) -> bool: ...

    async def list_active_grouped_by_artifact(
        self,
    ) -> dict[str, list[Alert]]: ...

    async def get(self, alert_id: str) -> Alert | None: ...


class ArtifactStore(Protocol):
    async def get_artifact_with_materials(
        self, artifact_id: str
    ) -> Artifact | None: ...


class NotificationLog(Protocol):
    async def record(
        self,
        artifact_id: str,
        alert_ids: Sequence[str],
        subject: str,
        sent_at: datetime,
    ) -> None: ...
