"""
Session metrics: event counts, named counters and operation latency.

Everything here is touched from the event loop thread only, so the
trackers carry no locks. Silent conditions (stale depth, dropped
messages) show up as counters rather than as errors.
"""

import time
from collections import deque
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Deque, Dict, Iterator, Optional

LATENCY_WINDOW = 500


@dataclass(frozen=True)
class LatencyStats:
    """Latency of one operation; percentiles cover the recent window only."""

    count: int
    mean_ms: float
    p95_ms: float
    max_ms: float


@dataclass(frozen=True)
class RateStats:
    """Event total and average rate since the first event."""

    total_count: int
    rate_per_second: float


class _Latency:
    def __init__(self) -> None:
        self.recent: Deque[float] = deque(maxlen=LATENCY_WINDOW)
        self.count = 0
        self.total_ms = 0.0
        self.max_ms = 0.0

    def add(self, ms: float) -> None:
        self.recent.append(ms)
        self.count += 1
        self.total_ms += ms
        self.max_ms = max(self.max_ms, ms)

    def stats(self) -> LatencyStats:
        ordered = sorted(self.recent)
        last = len(ordered) - 1
        return LatencyStats(
            count=self.count,
            mean_ms=self.total_ms / self.count if self.count else 0.0,
            p95_ms=ordered[min(int(len(ordered) * 0.95), last)] if ordered else 0.0,
            max_ms=self.max_ms,
        )


class _Rate:
    def __init__(self) -> None:
        self.first = time.monotonic()
        self.total = 0

    def add(self, count: int) -> None:
        self.total += count

    def stats(self) -> RateStats:
        elapsed = time.monotonic() - self.first
        return RateStats(
            total_count=self.total,
            rate_per_second=self.total / elapsed if elapsed > 0 else 0.0,
        )


class MetricsCollector:
    """
    Metrics for one controller.

    Usage:
        metrics = MetricsCollector()

        with metrics.time("depth_fetch"):
            await sampler.sample(symbol)

        metrics.record_event("trades")
        metrics.increment("depth_failures")
    """

    def __init__(self):
        self._started = time.monotonic()
        self._counters: Dict[str, int] = {}
        self._rates: Dict[str, _Rate] = {}
        self._latencies: Dict[str, _Latency] = {}

    @contextmanager
    def time(self, operation: str) -> Iterator[None]:
        """Time the enclosed block, whether or not it raises."""
        tracker = self._latencies.setdefault(operation, _Latency())
        begin = time.perf_counter()
        try:
            yield
        finally:
            tracker.add((time.perf_counter() - begin) * 1000)

    def record_event(self, event_type: str, count: int = 1) -> None:
        self._rates.setdefault(event_type, _Rate()).add(count)

    def increment(self, counter: str, amount: int = 1) -> None:
        self._counters[counter] = self._counters.get(counter, 0) + amount

    def get_counter(self, name: str) -> int:
        return self._counters.get(name, 0)

    def get_rate_stats(self, event_type: str) -> Optional[RateStats]:
        tracker = self._rates.get(event_type)
        return tracker.stats() if tracker else None

    def get_latency_stats(self, operation: str) -> Optional[LatencyStats]:
        tracker = self._latencies.get(operation)
        return tracker.stats() if tracker else None

    @property
    def uptime_seconds(self) -> float:
        return time.monotonic() - self._started
