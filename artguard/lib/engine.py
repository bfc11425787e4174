"""Alert engine: the entry point for measurements and dismissals.

Wires threshold resolution, exceedance evaluation and deduplication together,
and clears notification rate limiting when an alert is dismissed.
"""

import asyncio
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import datetime

from artguard.lib.config import get_settings
from artguard.lib.dedup import Deduplicator
from artguard.lib.evaluator import find_exceedances
from artguard.lib.eventbus import (
    AlertEventKind,
    AlertEventPayload,
    EventPublisher,
    Topic,
)
from artguard.lib.exceptions import StorageError
from artguard.lib.models import Alert, Measurement
from artguard.lib.ratelimit import RateLimiter, utc_now
from artguard.lib.stores import AlertStore, ArtifactStore
from artguard.lib.thresholds import resolve_thresholds
from artguard.logging import get_logger

logger = get_logger("lib.engine")


@dataclass(slots=True)
class EvaluationResult:
    """Alerts produced for one measurement, or the storage failure that
    stopped it.

    ``alerts`` holds every alert the measurement maps to, whether newly
    created or an existing alert it was folded into. ``created`` is the
    subset written by this call. On failure the measurement is unprocessed
    and can be resubmitted as-is.
    """

    alerts: list[Alert] = field(default_factory=list)
    created: list[Alert] = field(default_factory=list)
    error: StorageError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class AlertEngine:
    def __init__(
        self,
        alerts: AlertStore,
        artifacts: ArtifactStore,
        rate_limiter: RateLimiter,
        publisher: EventPublisher | None = None,
        max_concurrent: int | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._alerts = alerts
        self._artifacts = artifacts
        self._rate_limiter = rate_limiter
        self._publisher = publisher
        self._clock = clock
        self._dedup = Deduplicator(alerts, clock=clock)
        self._max_concurrent = (
            max_concurrent or get_settings().engine.max_concurrent_evaluations
        )
        self._semaphore: asyncio.Semaphore | None = None

    def _get_semaphore(self) -> asyncio.Semaphore:
        # Lazy init: asyncio.Semaphore requires running event loop
        if self._semaphore is None:
            self._semaphore = asyncio.Semaphore(self._max_concurrent)
        return self._semaphore

    async def evaluate(self, measurement: Measurement) -> EvaluationResult:
        """Evaluate one measurement and create or fold alerts.

        Never raises for storage failures; they are returned in the result.
        Properties are processed in order and the first storage failure stops
        the measurement, leaving earlier properties' alerts in place.
        """
        result = EvaluationResult()
        try:
            artifact = await self._artifacts.get_artifact_with_materials(
                measurement.artifact_id
            )
            if artifact is None:
                logger.debug(
                    "Unknown artifact %s, evaluating without material bounds",
                    measurement.artifact_id,
                )
            exceedances = find_exceedances(
                measurement, resolve_thresholds(artifact)
            )
            for exceedance in exceedances:
                decision = await self._dedup.process(
                    exceedance,
                    artifact_id=measurement.artifact_id,
                    measurement_id=measurement.id,
                    device_id=measurement.device_id,
                    measured_at=measurement.timestamp,
                )
                if decision.alert is None:
                    continue
                result.alerts.append(decision.alert)
                if decision.wrote:
                    result.created.append(decision.alert)
                    self._publish(AlertEventKind.CREATED, decision.alert)
        except StorageError as e:
            logger.error(
                "Evaluation of measurement %s failed: %s", measurement.id, e
            )
            result.error = e
        return result

    async def evaluate_many(
        self, measurements: Iterable[Measurement]
    ) -> list[EvaluationResult]:
        """Evaluate measurements concurrently, results in input order."""

        async def bounded(m: Measurement) -> EvaluationResult:
            async with self._get_semaphore():
                return await self.evaluate(m)

        return list(await asyncio.gather(*(bounded(m) for m in measurements)))

    async def dismiss(self, alert_id: str) -> bool:
        """Dismiss an alert and reset its artifact's notification rate limit.

        Returns:
            True if the alert went from active to dismissed; False for
            unknown or already dismissed alerts.

        Raises:
            StorageError: If the store fails.
        """
        alert = await self._alerts.get(alert_id)
        if alert is None:
            return False
        changed = await self._alerts.mark_dismissed(alert_id, self._clock())
        if not changed:
            return False

        self._rate_limiter.clear(alert.artifact_id)
        logger.info(
            "Dismissed %s alert %s for artifact %s",
            alert.property,
            alert_id,
            alert.artifact_id,
        )
        self._publish(AlertEventKind.DISMISSED, alert)
        return True

    def _publish(self, kind: AlertEventKind, alert: Alert) -> None:
        if self._publisher is None:
            return
        self._publisher.publish(Topic.ALERT, AlertEventPayload(kind, alert))
