"""Instrument variants and their read-only capability surfaces.

The set of variants is closed: ``Counter``, ``Gauge``, ``Histogram``,
``Meter`` and ``Timer``. The document schema depends on it, so the
dispatcher matches exactly these classes (or subclasses of them).

Instruments are updated from arbitrary threads while a document is being
written. Reads are best-effort: two fields of the same instrument may come
from slightly different moments.
"""

import functools
import math
import threading
from collections import deque
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Iterator, Optional, Protocol, Tuple

from .clock import Clock, DEFAULT_CLOCK
from .snapshot import Snapshot


class TimeUnit(str, Enum):
    """Units for durations and rates; values are the names used in documents."""

    NANOSECONDS = "nanoseconds"
    MICROSECONDS = "microseconds"
    MILLISECONDS = "milliseconds"
    SECONDS = "seconds"
    MINUTES = "minutes"
    HOURS = "hours"
    DAYS = "days"

    @property
    def nanos(self) -> int:
        """Length of one unit in nanoseconds."""
        return _NANOS_PER_UNIT[self]

    def convert(self, value: float, unit: "TimeUnit") -> float:
        """Convert ``value`` expressed in ``unit`` into this unit."""
        return value * unit.nanos / self.nanos


_NANOS_PER_UNIT = {
    TimeUnit.NANOSECONDS: 1,
    TimeUnit.MICROSECONDS: 1_000,
    TimeUnit.MILLISECONDS: 1_000_000,
    TimeUnit.SECONDS: 1_000_000_000,
    TimeUnit.MINUTES: 60 * 1_000_000_000,
    TimeUnit.HOURS: 60 * 60 * 1_000_000_000,
    TimeUnit.DAYS: 24 * 60 * 60 * 1_000_000_000,
}


@functools.total_ordering
@dataclass(frozen=True)
class MetricName:
    """Identity of one instrument.

    ``group`` and ``type`` together name the unit of code that owns the
    instrument; ``name`` is unique within that pair and is the key shown in
    documents. ``scope`` optionally splits one type into several groups.
    """

    group: str
    type: str
    name: str
    scope: Optional[str] = None

    @classmethod
    def for_class(cls, klass: type, name: str, scope: Optional[str] = None) -> "MetricName":
        return cls(klass.__module__, klass.__name__, name, scope)

    @property
    def qualified_type(self) -> str:
        """Group key used by the registry's grouped view."""
        qualified = f"{self.group}.{self.type}"
        if self.scope:
            qualified = f"{qualified}.{self.scope}"
        return qualified

    def _sort_key(self) -> Tuple[str, str, str, str]:
        return (self.group, self.type, self.name, self.scope or "")

    def __lt__(self, other: "MetricName") -> bool:
        if not isinstance(other, MetricName):
            return NotImplemented
        return self._sort_key() < other._sort_key()

    def __str__(self) -> str:
        return f"{self.qualified_type}.{self.name}"


class Summarizable(Protocol):
    """Running min/max/mean/std-dev over every recorded value."""

    @property
    def min(self) -> float: ...

    @property
    def max(self) -> float: ...

    @property
    def mean(self) -> float: ...

    @property
    def std_dev(self) -> float: ...


class Sampling(Protocol):
    """Produces a statistical snapshot of recent values."""

    def snapshot(self) -> Snapshot: ...


class Metered(Protocol):
    """Event counts and rates."""

    @property
    def event_type(self) -> str: ...

    @property
    def rate_unit(self) -> TimeUnit: ...

    @property
    def count(self) -> int: ...

    @property
    def mean_rate(self) -> float: ...

    @property
    def one_minute_rate(self) -> float: ...

    @property
    def five_minute_rate(self) -> float: ...

    @property
    def fifteen_minute_rate(self) -> float: ...


class Metric:
    """Base class of every instrument variant."""


class Counter(Metric):
    """Incrementing and decrementing count."""

    def __init__(self) -> None:
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


class Gauge(Metric):
    """Value computed on demand by a callable supplied at registration.

    Reading ``value`` runs the callable and propagates whatever it raises.
    """

    def __init__(self, func: Callable[[], Any]):
        self._func = func

    @property
    def value(self) -> Any:
        return self._func()


class Histogram(Metric):
    """Distribution of values.

    Summary fields cover every update since creation. The snapshot covers a
    sliding window of the most recent ``sample_size`` values.
    """

    DEFAULT_SAMPLE_SIZE = 1028

    def __init__(self, sample_size: int = DEFAULT_SAMPLE_SIZE):
        self._sample: deque = deque(maxlen=sample_size)
        self._lock = threading.Lock()
        self._reset()

    def _reset(self) -> None:
        self._count = 0
        self._min = math.inf
        self._max = -math.inf
        self._sum = 0.0
        # Welford running mean and sum of squared deviations
        self._mean = 0.0
        self._m2 = 0.0

    def update(self, value: float) -> None:
        with self._lock:
            self._sample.append(value)
            self._count += 1
            self._min = min(self._min, value)
            self._max = max(self._max, value)
            self._sum += value
            delta = value - self._mean
            self._mean += delta / self._count
            self._m2 += delta * (value - self._mean)

    def clear(self) -> None:
        with self._lock:
            self._sample.clear()
            self._reset()

    @property
    def count(self) -> int:
        return self._count

    @property
    def sum(self) -> float:
        return self._sum

    @property
    def min(self) -> float:
        return float(self._min) if self._count > 0 else 0.0

    @property
    def max(self) -> float:
        return float(self._max) if self._count > 0 else 0.0

    @property
    def mean(self) -> float:
        return self._mean if self._count > 0 else 0.0

    @property
    def std_dev(self) -> float:
        if self._count > 1:
            return math.sqrt(self._m2 / (self._count - 1))
        return 0.0

    def snapshot(self) -> Snapshot:
        with self._lock:
            values = list(self._sample)
        return Snapshot(values)


class EWMA:
    """Exponentially weighted moving average of an event rate.

    Callers record events with ``update`` and must call ``tick`` once per
    ``TICK_INTERVAL_NS``.
    """

    TICK_INTERVAL_NS = 5 * TimeUnit.SECONDS.nanos

    def __init__(self, minutes: int):
        self.alpha = 1 - math.exp(-5.0 / 60.0 / minutes)
        self._uncounted = 0
        self._rate = 0.0
        self._initialized = False

    def update(self, n: int) -> None:
        self._uncounted += n

    def tick(self) -> None:
        count, self._uncounted = self._uncounted, 0
        instant_rate = count / self.TICK_INTERVAL_NS
        if self._initialized:
            self._rate += self.alpha * (instant_rate - self._rate)
        else:
            self._rate = instant_rate
            self._initialized = True

    def rate(self, unit: TimeUnit) -> float:
        return self._rate * unit.nanos


class Meter(Metric):
    """Rate of events: mean since creation and 1/5/15 minute moving averages."""

    def __init__(
        self,
        event_type: str,
        rate_unit: TimeUnit = TimeUnit.SECONDS,
        clock: Optional[Clock] = None,
    ):
        self._event_type = event_type
        self._rate_unit = rate_unit
        self._clock = clock or DEFAULT_CLOCK
        self._start_time = self._clock.tick()
        self._last_tick = self._start_time
        self._count = 0
        self._m1 = EWMA(1)
        self._m5 = EWMA(5)
        self._m15 = EWMA(15)
        self._lock = threading.Lock()

    def mark(self, n: int = 1) -> None:
        with self._lock:
            self._tick_if_necessary()
            self._count += n
            self._m1.update(n)
            self._m5.update(n)
            self._m15.update(n)

    def _tick_if_necessary(self) -> None:
        now = self._clock.tick()
        age = now - self._last_tick
        if age > EWMA.TICK_INTERVAL_NS:
            self._last_tick = now - age % EWMA.TICK_INTERVAL_NS
            for _ in range(age // EWMA.TICK_INTERVAL_NS):
                self._m1.tick()
                self._m5.tick()
                self._m15.tick()

    def _moving_rate(self, ewma: EWMA) -> float:
        with self._lock:
            self._tick_if_necessary()
            return ewma.rate(self._rate_unit)

    @property
    def event_type(self) -> str:
        return self._event_type

    @property
    def rate_unit(self) -> TimeUnit:
        return self._rate_unit

    @property
    def count(self) -> int:
        return self._count

    @property
    def mean_rate(self) -> float:
        if self._count == 0:
            return 0.0
        elapsed = self._clock.tick() - self._start_time
        if elapsed <= 0:
            return 0.0
        return self._count / elapsed * self._rate_unit.nanos

    @property
    def one_minute_rate(self) -> float:
        return self._moving_rate(self._m1)

    @property
    def five_minute_rate(self) -> float:
        return self._moving_rate(self._m5)

    @property
    def fifteen_minute_rate(self) -> float:
        return self._moving_rate(self._m15)


class Timer(Metric):
    """Histogram of durations combined with a meter of how often they occur.

    Durations are stored in nanoseconds and reported in ``duration_unit``.
    """

    def __init__(
        self,
        duration_unit: TimeUnit = TimeUnit.MILLISECONDS,
        rate_unit: TimeUnit = TimeUnit.SECONDS,
        clock: Optional[Clock] = None,
    ):
        self._duration_unit = duration_unit
        self._clock = clock or DEFAULT_CLOCK
        self._histogram = Histogram()
        self._meter = Meter("calls", rate_unit, self._clock)

    def update(self, duration: float, unit: TimeUnit) -> None:
        if duration >= 0:
            self._histogram.update(TimeUnit.NANOSECONDS.convert(duration, unit))
            self._meter.mark()

    @contextmanager
    def time(self) -> Iterator[None]:
        start = self._clock.tick()
        try:
            yield
        finally:
            self.update(self._clock.tick() - start, TimeUnit.NANOSECONDS)

    def clear(self) -> None:
        self._histogram.clear()

    def _convert(self, nanos: float) -> float:
        return self._duration_unit.convert(nanos, TimeUnit.NANOSECONDS)

    @property
    def duration_unit(self) -> TimeUnit:
        return self._duration_unit

    @property
    def min(self) -> float:
        return self._convert(self._histogram.min)

    @property
    def max(self) -> float:
        return self._convert(self._histogram.max)

    @property
    def mean(self) -> float:
        return self._convert(self._histogram.mean)

    @property
    def std_dev(self) -> float:
        return self._convert(self._histogram.std_dev)

    @property
    def sum(self) -> float:
        return self._convert(self._histogram.sum)

    def snapshot(self) -> Snapshot:
        return Snapshot(self._convert(v) for v in self._histogram.snapshot().values)

    @property
    def event_type(self) -> str:
        return self._meter.event_type

    @property
    def rate_unit(self) -> TimeUnit:
        return self._meter.rate_unit

    @property
    def count(self) -> int:
        return self._histogram.count

    @property
    def mean_rate(self) -> float:
        return self._meter.mean_rate

    @property
    def one_minute_rate(self) -> float:
        return self._meter.one_minute_rate

    @property
    def five_minute_rate(self) -> float:
        return self._meter.five_minute_rate

    @property
    def fifteen_minute_rate(self) -> float:
        return self._meter.fifteen_minute_rate
