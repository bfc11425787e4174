"""Notification dispatch for active alerts.

One dispatch cycle groups every active alert by artifact and sends one
aggregated message per artifact, unless that artifact was already notified
within the rate-limit threshold. Failures stay per-artifact: a failed send
leaves the rate limiter untouched so the next cycle retries.
"""

import asyncio
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import datetime

from artguard.lib.config import Bound
from artguard.lib.exceptions import SendError, StorageError
from artguard.lib.locks import KeyedLock
from artguard.lib.models import Alert, Artifact
from artguard.lib.notifications import AbstractNotifier
from artguard.lib.ratelimit import RateLimiter, utc_now
from artguard.lib.stores import AlertStore, ArtifactStore, NotificationLog
from artguard.logging import get_logger

logger = get_logger("lib.dispatcher")

_TIME_FORMAT = "%Y-%m-%d %H:%M:%S UTC"


@dataclass(slots=True)
class DispatchReport:
    """What happened to each artifact during one cycle."""

    sent: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    error: StorageError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict[str, object]:
        return {
            "sent": self.sent,
            "skipped": self.skipped,
            "failed": self.failed,
            "error": str(self.error) if self.error else None,
        }


def describe_alert(alert: Alert) -> str:
    """One line describing an alert, e.g. ``HIGH Temperature: 27.0°C ...``."""
    prop = alert.property
    direction = "HIGH" if alert.exceeded_bound == Bound.UPPER else "LOW"
    limit = "max" if alert.exceeded_bound == Bound.UPPER else "min"
    when = alert.measured_at or alert.created_at
    return (
        f"{direction} {prop.label}: {alert.measured_value:g}{prop.unit} "
        f"({limit} {alert.threshold_value:g}{prop.unit}) "
        f"at {when.strftime(_TIME_FORMAT)}"
    )


def build_message(
    artifact_id: str, alerts: Sequence[Alert], artifact: Artifact | None = None
) -> tuple[str, str]:
    """Build the subject and plain-text body for an artifact's alerts."""
    name = artifact.display_name if artifact else artifact_id
    if len(alerts) == 1:
        only = alerts[0]
        direction = "HIGH" if only.exceeded_bound == Bound.UPPER else "LOW"
        subject = f"ALERT: {direction} {only.property.label} for {name}"
    else:
        subject = f"ALERT: {len(alerts)} environmental issues for {name}"

    lines = [
        "Environmental alert for museum artwork",
        "",
        f"Artwork: {name}",
    ]
    if artifact and artifact.location:
        lines.append(f"Location: {artifact.location}")
    lines += ["", "Active alerts:"]
    lines += [f"  - {describe_alert(a)}" for a in alerts]
    lines += [
        "",
        "Please check the environmental control systems in the affected area "
        "and make appropriate adjustments.",
    ]
    return subject, "\n".join(lines)


class NotificationDispatcher:
    def __init__(
        self,
        store: AlertStore,
        notifier: AbstractNotifier,
        rate_limiter: RateLimiter,
        artifacts: ArtifactStore | None = None,
        log: NotificationLog | None = None,
        send_timeout_sec: float | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._store = store
        self._notifier = notifier
        self._rate_limiter = rate_limiter
        self._artifacts = artifacts
        self._log = log
        self._send_timeout = send_timeout_sec
        self._clock = clock
        self._locks: KeyedLock[str] = KeyedLock()

    @property
    def rate_limiter(self) -> RateLimiter:
        return self._rate_limiter

    async def dispatch(self) -> DispatchReport:
        """Run one notification cycle over every active alert."""
        report = DispatchReport()
        try:
            grouped = await self._store.list_active_grouped_by_artifact()
        except StorageError as e:
            logger.error("Dispatch cycle aborted, cannot load alerts: %s", e)
            report.error = e
            return report

        # Artifacts with the most open issues go first
        ordered = sorted(grouped.items(), key=lambda kv: len(kv[1]), reverse=True)
        for artifact_id, alerts in ordered:
            await self._dispatch_artifact(artifact_id, alerts, report)

        if report.sent or report.failed:
            logger.info(
                "Dispatch cycle done: %d sent, %d skipped, %d failed",
                len(report.sent),
                len(report.skipped),
                len(report.failed),
            )
        return report

    async def _dispatch_artifact(
        self, artifact_id: str, alerts: list[Alert], report: DispatchReport
    ) -> None:
        async with self._locks.acquire(artifact_id):
            now = self._clock()
            if self._rate_limiter.should_skip(artifact_id, now):
                logger.debug(
                    "Skipping artifact %s, notified at %s",
                    artifact_id,
                    self._rate_limiter.last_sent_at(artifact_id),
                )
                report.skipped.append(artifact_id)
                return

            generation = self._rate_limiter.generation(artifact_id)
            artifact = await self._load_artifact(artifact_id)
            subject, body = build_message(artifact_id, alerts, artifact)
            try:
                await asyncio.wait_for(
                    self._notifier.send(artifact_id, subject, body),
                    timeout=self._send_timeout,
                )
            except (SendError, TimeoutError) as e:
                logger.error(
                    "Notification for artifact %s failed: %s",
                    artifact_id,
                    str(e) or "timed out",
                )
                report.failed.append(artifact_id)
                return

            if not self._rate_limiter.mark_sent(
                artifact_id, now, generation=generation
            ):
                logger.info(
                    "Artifact %s was dismissed during send, rate limit left clear",
                    artifact_id,
                )
            report.sent.append(artifact_id)

        await self._record(artifact_id, alerts, subject, now)

    async def _load_artifact(self, artifact_id: str) -> Artifact | None:
        if self._artifacts is None:
            return None
        try:
            return await self._artifacts.get_artifact_with_materials(artifact_id)
        except StorageError as e:
            logger.warning(
                "Cannot load artifact %s details for message: %s",
                artifact_id,
                e,
            )
            return None

    async def _record(
        self,
        artifact_id: str,
        alerts: Sequence[Alert],
        subject: str,
        sent_at: datetime,
    ) -> None:
        if self._log is None:
            return
        try:
            await self._log.record(
                artifact_id, [a.id for a in alerts], subject, sent_at
            )
        except StorageError as e:
            logger.warning(
                "Notification for artifact %s sent but not recorded: %s",
                artifact_id,
                e,
            )
