"""Alert deduplication.

Decides, for one exceedance, whether to open a new alert or fold it into an
active one for the same (artifact, property, bound) key:

- An alert already created from the same measurement and property means the
  measurement was resubmitted; nothing is written.
- No active alert for the key inside the property's window: create one.
- An active alert exists and the value moved by at most the property's
  significance percentage: keep the existing alert.
- The value moved further: insert a new alert. The older one stays active
  until dismissed, so a key can carry several active rows.

The whole check-then-insert sequence runs under a per-key lock.
"""

import uuid
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum

from artguard.lib.config import Bound, Property
from artguard.lib.locks import KeyedLock
from artguard.lib.models import Alert, Exceedance
from artguard.lib.ratelimit import utc_now
from artguard.lib.stores import AlertStore
from artguard.logging import get_logger

logger = get_logger("lib.dedup")

type DedupKey = tuple[str, Property, Bound]


class DedupOutcome(StrEnum):
    CREATED = "created"
    SUPPRESSED = "suppressed"
    SUPERSEDED = "superseded"
    DUPLICATE = "duplicate"


@dataclass(frozen=True, slots=True)
class DedupDecision:
    """Outcome of processing one exceedance.

    ``alert`` is the new or folded-into alert; None only for DUPLICATE.
    """

    outcome: DedupOutcome
    alert: Alert | None

    @property
    def wrote(self) -> bool:
        return self.outcome in (DedupOutcome.CREATED, DedupOutcome.SUPERSEDED)


def percent_change(previous: float, current: float) -> float:
    """Relative change from previous to current, in percent.

    Measured against the magnitude of the previous value so negative readings
    (sub-zero temperatures) still yield a positive change. A previous value of
    zero makes any nonzero current value infinitely significant.
    """
    if previous == 0:
        return 0.0 if current == 0 else float("inf")
    return abs(current - previous) / abs(previous) * 100


def is_significant(prop: Property, previous: float, current: float) -> bool:
    return percent_change(previous, current) > prop.significance_pct


class Deduplicator:
    def __init__(
        self,
        store: AlertStore,
        clock: Callable[[], datetime] = utc_now,
        locks: KeyedLock[DedupKey] | None = None,
    ) -> None:
        self._store = store
        self._clock = clock
        self._locks: KeyedLock[DedupKey] = locks or KeyedLock()

    async def process(
        self,
        exceedance: Exceedance,
        *,
        artifact_id: str,
        measurement_id: str | None = None,
        device_id: str | None = None,
        measured_at: datetime | None = None,
    ) -> DedupDecision:
        """Create, fold or skip an alert for one exceedance.

        Raises:
            StorageError: If the store fails; nothing is partially written.
        """
        prop = exceedance.property
        key: DedupKey = (artifact_id, prop, exceedance.bound)

        async with self._locks.acquire(key):
            if measurement_id is not None:
                seen = await self._store.find_by_measurement(measurement_id, prop)
                if seen is not None:
                    logger.debug(
                        "Measurement %s already produced %s alert %s",
                        measurement_id,
                        prop,
                        seen.id,
                    )
                    return DedupDecision(DedupOutcome.DUPLICATE, None)

            now = self._clock()
            matches = await self._store.find_active_matching(
                artifact_id,
                prop,
                exceedance.bound,
                created_after=now - prop.dedup_window,
            )

            outcome = DedupOutcome.CREATED
            if matches:
                existing = matches[0]
                if not is_significant(
                    prop, existing.measured_value, exceedance.value
                ):
                    logger.info(
                        "Suppressed %s %s alert for artifact %s: %s within "
                        "%s%% of %s",
                        prop,
                        exceedance.bound,
                        artifact_id,
                        exceedance.value,
                        prop.significance_pct,
                        existing.measured_value,
                    )
                    return DedupDecision(DedupOutcome.SUPPRESSED, existing)
                outcome = DedupOutcome.SUPERSEDED

            alert = await self._store.insert(
                Alert(
                    id=str(uuid.uuid4()),
                    artifact_id=artifact_id,
                    property=prop,
                    exceeded_bound=exceedance.bound,
                    measured_value=exceedance.value,
                    threshold_value=exceedance.threshold_value,
                    created_at=now,
                    device_id=device_id,
                    measurement_id=measurement_id,
                    measured_at=measured_at,
                )
            )

        logger.info(
            "%s %s %s alert %s for artifact %s (value %s, threshold %s)",
            outcome.capitalize(),
            prop,
            exceedance.bound,
            alert.id,
            artifact_id,
            exceedance.value,
            exceedance.threshold_value,
        )
        return DedupDecision(outcome, alert)
