"""Rolling, time-bucketed outcome counters.

The window keeps a fixed ring of buckets, one per ``bucket_width`` seconds.
Each slot remembers which time index it currently holds, so a stale slot is
recycled the next time it is written and skipped when read. Memory and read
cost are bounded by the bucket count, never by call volume.

The window is not synchronised; its owning breaker serialises access.
"""

import math
from dataclasses import dataclass

from callguard.circuit_breaker.state import Outcome, OutcomeKind


@dataclass(frozen=True, slots=True)
class WindowCounts:
    """Aggregated counts over the live buckets of a window.

    Attributes:
        total_calls: Successes, failures and timeouts.
        failure_count: Failures and timeouts.
        timeout_count: Timeouts only.
        rejected_count: Fast-failed calls, excluded from the totals above.
    """

    total_calls: int = 0
    failure_count: int = 0
    timeout_count: int = 0
    rejected_count: int = 0


@dataclass(slots=True)
class _Bucket:
    index: int
    successes: int = 0
    failures: int = 0
    timeouts: int = 0
    rejected: int = 0

    def reset(self, index: int) -> None:
        self.index = index
        self.successes = 0
        self.failures = 0
        self.timeouts = 0
        self.rejected = 0


class OutcomeWindow:
    """Bounded rolling record of call outcomes."""

    def __init__(self, *, window_duration: float, bucket_width: float) -> None:
        """Create an empty window.

        Args:
            window_duration: Seconds of history kept.
            bucket_width: Seconds covered by each bucket.
        """
        if window_duration <= 0 or bucket_width <= 0:
            raise ValueError("window_duration and bucket_width must be > 0")
        self.window_duration = window_duration
        self.bucket_width = bucket_width
        self._size = math.ceil(window_duration / bucket_width)
        self._buckets = [_Bucket(index=-1) for _ in range(self._size)]

    def __len__(self) -> int:
        return self._size

    def _index(self, now: float) -> int:
        return math.floor(now / self.bucket_width)

    def _is_live(self, bucket: _Bucket, current: int) -> bool:
        return current - self._size < bucket.index <= current

    def record(self, outcome: Outcome) -> None:
        """Count one outcome in the bucket covering its timestamp."""
        index = self._index(outcome.timestamp)
        bucket = self._buckets[index % self._size]
        if bucket.index != index:
            bucket.reset(index)

        match outcome.kind:
            case OutcomeKind.SUCCESS:
                bucket.successes += 1
            case OutcomeKind.FAILURE:
                bucket.failures += 1
            case OutcomeKind.TIMEOUT:
                bucket.timeouts += 1
            case OutcomeKind.REJECTED:
                bucket.rejected += 1

    def snapshot(self, now: float) -> WindowCounts:
        """Aggregate counts over buckets still inside the window at ``now``."""
        current = self._index(now)
        successes = failures = timeouts = rejected = 0
        for bucket in self._buckets:
            if not self._is_live(bucket, current):
                continue
            successes += bucket.successes
            failures += bucket.failures
            timeouts += bucket.timeouts
            rejected += bucket.rejected
        return WindowCounts(
            total_calls=successes + failures + timeouts,
            failure_count=failures + timeouts,
            timeout_count=timeouts,
            rejected_count=rejected,
        )

    def clear(self) -> None:
        """Forget every recorded outcome."""
        for bucket in self._buckets:
            bucket.reset(-1)
