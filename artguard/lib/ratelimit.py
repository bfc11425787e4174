"""Per-artifact notification rate limiting.

State lives in memory only. Losing it on restart means at most one extra
notification per artifact, which is acceptable.
"""

import threading
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

from artguard.lib.config.constants import DEFAULT_ALERT_THRESHOLD_MINUTES


def utc_now() -> datetime:
    return datetime.now(UTC)


class RateLimiter:
    """Tracks when each artifact was last notified.

    Thread-safe: the dispatch loop and HTTP handlers (dismissal) may touch the
    same instance.
    """

    def __init__(
        self,
        threshold_minutes: int = DEFAULT_ALERT_THRESHOLD_MINUTES,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._threshold = timedelta(minutes=threshold_minutes)
        self._clock = clock
        self._last_sent: dict[str, datetime] = {}
        self._clears: dict[str, int] = {}
        self._resets = 0
        self._lock = threading.Lock()

    @property
    def threshold(self) -> timedelta:
        return self._threshold

    def should_skip(self, artifact_id: str, now: datetime | None = None) -> bool:
        """Whether the artifact was notified less than the threshold ago."""
        now = now or self._clock()
        with self._lock:
            last = self._last_sent.get(artifact_id)
        return last is not None and now - last < self._threshold

    def generation(self, artifact_id: str) -> int:
        """Counter that moves whenever the artifact is cleared or reset.

        Take it before a send and pass it to mark_sent() so a dismissal that
        lands while the send is in flight is not overwritten.
        """
        with self._lock:
            return self._resets + self._clears.get(artifact_id, 0)

    def mark_sent(
        self,
        artifact_id: str,
        now: datetime | None = None,
        *,
        generation: int | None = None,
    ) -> bool:
        """Record a send.

        Returns False and leaves the artifact unmarked if it was cleared after
        ``generation`` was taken.
        """
        with self._lock:
            current = self._resets + self._clears.get(artifact_id, 0)
            if generation is not None and generation != current:
                return False
            self._last_sent[artifact_id] = now or self._clock()
            return True

    def clear(self, artifact_id: str) -> None:
        """Forget the last send so the next cycle may notify immediately."""
        with self._lock:
            self._last_sent.pop(artifact_id, None)
            self._clears[artifact_id] = self._clears.get(artifact_id, 0) + 1

    def last_sent_at(self, artifact_id: str) -> datetime | None:
        with self._lock:
            return self._last_sent.get(artifact_id)

    def reset(self) -> None:
        with self._lock:
            self._last_sent.clear()
            self._resets += 1
