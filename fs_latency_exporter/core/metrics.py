"""Thread-safe read latency histogram and error counter, exposed in Prometheus text format."""

import bisect
import threading
from typing import Iterable, List, Sequence

from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry, generate_latest
from prometheus_client.core import CounterMetricFamily, HistogramMetricFamily
from prometheus_client.utils import floatToGoString

from fs_latency_exporter.core.interfaces import HistogramSnapshot, IMetricsSink

DEFAULT_BUCKETS = (
    0.0001,
    0.00025, 0.0005, 0.001,
    0.0025, 0.005, 0.01,
    0.025, 0.05, 0.1,
    0.25, 0.5, 1.0,
)

class MetricsRegistry(IMetricsSink):
    """
    Holds errors_total and read_time_seconds for the lifetime of the process.

    One lock guards every value, so a snapshot never mixes observations:
    bucket counts, sum, count and errors all describe the same instant.
    Values only ever grow.
    """

    content_type = CONTENT_TYPE_LATEST

    def __init__(self, buckets: Sequence[float] = DEFAULT_BUCKETS):
        bounds = [float(b) for b in buckets]
        if not bounds:
            raise ValueError("At least one histogram bucket is required")
        if bounds[0] <= 0:
            raise ValueError(f"Bucket bounds must be positive, got {bounds[0]}")
        if any(lo >= hi for lo, hi in zip(bounds, bounds[1:])):
            raise ValueError(f"Bucket bounds must be strictly increasing: {bounds}")

        self._bounds = bounds
        self._lock = threading.Lock()
        self._errors = 0
        self._counts = [0] * (len(bounds) + 1)  # last slot is +Inf
        self._sum = 0.0
        self._count = 0

        self._registry = CollectorRegistry()
        self._registry.register(self)

    @property
    def bounds(self) -> List[float]:
        return list(self._bounds)

    def record_success(self, duration: float) -> None:
        # Upper bounds are inclusive (le)
        index = bisect.bisect_left(self._bounds, duration)
        with self._lock:
            self._counts[index] += 1
            self._sum += duration
            self._count += 1

    def record_error(self) -> None:
        with self._lock:
            self._errors += 1

    def snapshot(self) -> HistogramSnapshot:
        with self._lock:
            counts = list(self._counts)
            errors = self._errors
            total = self._sum
            count = self._count

        cumulative = []
        running = 0
        for c in counts:
            running += c
            cumulative.append(running)

        return HistogramSnapshot(
            errors=errors,
            bounds=self.bounds,
            cumulative_counts=cumulative,
            total_seconds=total,
            count=count
        )

    def collect(self) -> Iterable:
        snap = self.snapshot()
        yield CounterMetricFamily("errors_total", "Number of read errors", value=snap.errors)

        les = [floatToGoString(b) for b in snap.bounds] + ["+Inf"]
        yield HistogramMetricFamily(
            "read_time_seconds",
            "Time taken to read (latency)",
            buckets=list(zip(les, snap.cumulative_counts)),
            sum_value=snap.total_seconds
        )

    def render(self) -> str:
        """Exposition text for the current snapshot."""
        return generate_latest(self._registry).decode("utf-8")
