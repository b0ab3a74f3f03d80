"""Metric instruments - Counter, Gauge, Meter, Histogram and Timer.

Instruments are plain in-memory objects updated directly by application code.
Every instrument guards its state with its own lock so it can be updated from
request handlers running on any thread. Each exposes snapshot(), returning the
pydantic model the registry serializes.
"""

import math
import random
import threading
import time
from contextlib import contextmanager
from typing import Callable, Iterator, List, Optional, Sequence

from metrictags.core.config import settings
from .models import (
    CounterSnapshotModel, GaugeSnapshotModel, MeterSnapshotModel,
    HistogramSnapshotModel, TimerSnapshotModel, Number
)

# Percentiles reported in every histogram and timer snapshot
SNAPSHOT_PERCENTILES = (0.5, 0.75, 0.95, 0.99, 0.999)


class Counter:
    """Adjustable integer accumulator."""

    def __init__(self):
        self._count = 0
        self._lock = threading.Lock()

    def inc(self, n: int = 1) -> None:
        with self._lock:
            self._count += n

    def dec(self, n: int = 1) -> None:
        with self._lock:
            self._count -= n

    def clear(self) -> None:
        with self._lock:
            self._count = 0

    @property
    def count(self) -> int:
        return self._count

    def snapshot(self) -> CounterSnapshotModel:
        return CounterSnapshotModel(count=self.count)


class Gauge:
    """Holds the last value it was updated with."""

    def __init__(self):
        self._value: Number = 0
        self._lock = threading.Lock()

    def update(self, value: Number) -> None:
        with self._lock:
            self._value = value

    @property
    def value(self) -> Number:
        return self._value

    def snapshot(self) -> GaugeSnapshotModel:
        return GaugeSnapshotModel(value=self.value)


class EWMA:
    """Exponentially-weighted moving average of a per-second rate.

    Not thread-safe on its own; the owning Meter serializes access.
    """

    TICK_INTERVAL = 5.0  # seconds between ticks

    def __init__(self, alpha: float):
        self.alpha = alpha
        self._uncounted = 0
        self._rate = 0.0
        self._initialized = False

    @classmethod
    def for_minutes(cls, minutes: float) -> "EWMA":
        """EWMA decaying over the given number of minutes (1, 5 and 15 are the usual ones)."""
        return cls(1.0 - math.exp(-cls.TICK_INTERVAL / 60.0 / minutes))

    def update(self, n: int) -> None:
        self._uncounted += n

    def tick(self) -> None:
        """Fold the events seen since the last tick into the rate."""
        instant_rate = self._uncounted / self.TICK_INTERVAL
        self._uncounted = 0
        if self._initialized:
            self._rate += self.alpha * (instant_rate - self._rate)
        else:
            self._rate = instant_rate
            self._initialized = True

    @property
    def rate(self) -> float:
        return self._rate


class Meter:
    """Counts events and tracks their rate over 1, 5 and 15 minute windows.

    EWMA ticks are applied lazily on every mark and read, so a meter needs no
    background thread.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._start = clock()
        self._last_tick = self._start
        self._count = 0
        self._m1 = EWMA.for_minutes(1)
        self._m5 = EWMA.for_minutes(5)
        self._m15 = EWMA.for_minutes(15)
        self._lock = threading.Lock()

    def _tick_if_necessary(self) -> None:
        age = self._clock() - self._last_tick
        if age <= EWMA.TICK_INTERVAL:
            return
        ticks = int(age // EWMA.TICK_INTERVAL)
        self._last_tick += ticks * EWMA.TICK_INTERVAL
        for _ in range(ticks):
            self._m1.tick()
            self._m5.tick()
            self._m15.tick()

    def mark(self, n: int = 1) -> None:
        with self._lock:
            self._tick_if_necessary()
            self._count += n
            self._m1.update(n)
            self._m5.update(n)
            self._m15.update(n)

    @property
    def count(self) -> int:
        return self._count

    @property
    def rate1(self) -> float:
        with self._lock:
            self._tick_if_necessary()
            return self._m1.rate

    @property
    def rate5(self) -> float:
        with self._lock:
            self._tick_if_necessary()
            return self._m5.rate

    @property
    def rate15(self) -> float:
        with self._lock:
            self._tick_if_necessary()
            return self._m15.rate

    @property
    def rate_mean(self) -> float:
        """Events per second since the meter was created."""
        elapsed = self._clock() - self._start
        if elapsed <= 0:
            return 0.0
        return self._count / elapsed

    def snapshot(self) -> MeterSnapshotModel:
        return MeterSnapshotModel(
            count=self.count,
            rate1=self.rate1,
            rate5=self.rate5,
            rate15=self.rate15,
            rate_mean=self.rate_mean,
        )


class UniformSample:
    """Fixed-size reservoir keeping a uniform random sample of all values seen.

    Uses Vitter's Algorithm R. Not thread-safe on its own.
    """

    def __init__(self, reservoir_size: int):
        if reservoir_size <= 0:
            raise ValueError(f"Reservoir size must be positive, got {reservoir_size}")
        self.reservoir_size = reservoir_size
        self._values: List[Number] = []
        self._count = 0

    def update(self, value: Number) -> None:
        self._count += 1
        if len(self._values) < self.reservoir_size:
            self._values.append(value)
            return
        r = random.randint(0, self._count - 1)
        if r < self.reservoir_size:
            self._values[r] = value

    def clear(self) -> None:
        self._values.clear()
        self._count = 0

    @property
    def count(self) -> int:
        return self._count

    def values(self) -> List[Number]:
        return list(self._values)


def sample_percentiles(sorted_values: Sequence[Number], percentiles: Sequence[float]) -> List[float]:
    """Interpolated percentiles of an ascending sequence.

    Position p * (n + 1) is interpolated between its neighbouring values and
    clamped to the first and last value.
    """
    n = len(sorted_values)
    results: List[float] = []
    for p in percentiles:
        if n == 0:
            results.append(0.0)
            continue
        pos = p * (n + 1)
        if pos < 1.0:
            results.append(float(sorted_values[0]))
        elif pos >= n:
            results.append(float(sorted_values[-1]))
        else:
            lower = sorted_values[int(pos) - 1]
            upper = sorted_values[int(pos)]
            results.append(lower + (pos - math.floor(pos)) * (upper - lower))
    return results


class Histogram:
    """Distribution of sampled values backed by a uniform reservoir."""

    def __init__(self, reservoir_size: Optional[int] = None):
        self._sample = UniformSample(reservoir_size or settings.METRICS_HISTOGRAM_RESERVOIR)
        self._lock = threading.Lock()

    def update(self, value: Number) -> None:
        with self._lock:
            self._sample.update(value)

    def clear(self) -> None:
        with self._lock:
            self._sample.clear()

    @property
    def count(self) -> int:
        return self._sample.count

    def values(self) -> List[Number]:
        """Sorted copy of the current reservoir."""
        with self._lock:
            return sorted(self._sample.values())

    @property
    def min(self) -> float:
        values = self.values()
        return float(values[0]) if values else 0.0

    @property
    def max(self) -> float:
        values = self.values()
        return float(values[-1]) if values else 0.0

    @property
    def mean(self) -> float:
        values = self.values()
        return sum(values) / len(values) if values else 0.0

    @property
    def stddev(self) -> float:
        values = self.values()
        if not values:
            return 0.0
        mean = sum(values) / len(values)
        return math.sqrt(sum((v - mean) ** 2 for v in values) / len(values))

    def percentile(self, p: float) -> float:
        return sample_percentiles(self.values(), [p])[0]

    def percentiles(self, ps: Sequence[float]) -> List[float]:
        return sample_percentiles(self.values(), ps)

    def snapshot(self) -> HistogramSnapshotModel:
        return HistogramSnapshotModel(**self._snapshot_fields())

    def _snapshot_fields(self) -> dict:
        # Single read of the reservoir so all statistics agree
        with self._lock:
            count = self._sample.count
            values = sorted(self._sample.values())

        if values:
            mean = sum(values) / len(values)
            stddev = math.sqrt(sum((v - mean) ** 2 for v in values) / len(values))
            low, high = float(values[0]), float(values[-1])
        else:
            mean = stddev = low = high = 0.0

        median, p75, p95, p99, p999 = sample_percentiles(values, SNAPSHOT_PERCENTILES)
        return {
            "count": count,
            "min": low,
            "max": high,
            "mean": mean,
            "stddev": stddev,
            "median": median,
            "p75": p75,
            "p95": p95,
            "p99": p99,
            "p999": p999,
        }


class Timer:
    """Histogram of durations in milliseconds plus a meter of how often they happen.

    Usage example:
    ```python
    with metrics.smtp.latency.time():
        send_message(msg)
    ```
    """

    def __init__(self, reservoir_size: Optional[int] = None, clock: Callable[[], float] = time.monotonic):
        self._histogram = Histogram(reservoir_size)
        self._meter = Meter(clock=clock)

    def update(self, duration_ms: float) -> None:
        """Record one duration, in milliseconds."""
        self._histogram.update(duration_ms)
        self._meter.mark(1)

    def update_since(self, start: float) -> None:
        """Record the time elapsed since start, a time.monotonic() reading."""
        self.update((time.monotonic() - start) * 1000.0)

    @contextmanager
    def time(self) -> Iterator[None]:
        """Time the enclosed block."""
        t0 = time.monotonic_ns()
        try:
            yield
        finally:
            self.update((time.monotonic_ns() - t0) / 1_000_000.0)

    @property
    def count(self) -> int:
        return self._histogram.count

    @property
    def min(self) -> float:
        return self._histogram.min

    @property
    def max(self) -> float:
        return self._histogram.max

    @property
    def mean(self) -> float:
        return self._histogram.mean

    @property
    def stddev(self) -> float:
        return self._histogram.stddev

    def percentile(self, p: float) -> float:
        return self._histogram.percentile(p)

    def percentiles(self, ps: Sequence[float]) -> List[float]:
        return self._histogram.percentiles(ps)

    @property
    def rate1(self) -> float:
        return self._meter.rate1

    @property
    def rate5(self) -> float:
        return self._meter.rate5

    @property
    def rate15(self) -> float:
        return self._meter.rate15

    @property
    def rate_mean(self) -> float:
        return self._meter.rate_mean

    def snapshot(self) -> TimerSnapshotModel:
        return TimerSnapshotModel(
            **self._histogram._snapshot_fields(),
            rate1=self.rate1,
            rate5=self.rate5,
            rate15=self.rate15,
            rate_mean=self.rate_mean,
        )


# Field types the binder knows how to populate
INSTRUMENT_TYPES = (Counter, Gauge, Meter, Histogram, Timer)
