"""MetricsRegistry - In-memory store of named instruments.

Instruments are created on first use and live for the life of the process.
The grouped view is what the document serializer iterates.
"""

import threading
from typing import Any, Callable, Dict, Optional, Tuple, Type, TypeVar

from .clock import Clock, DEFAULT_CLOCK
from .instruments import (
    Counter, Gauge, Histogram, Meter, Metric, MetricName, TimeUnit, Timer
)

M = TypeVar("M", bound=Metric)


class MetricTypeConflictError(Exception):
    """Raised when a name is already registered as a different variant."""

    def __init__(self, name: MetricName, existing: Metric, requested: type):
        super().__init__(
            f"{name} is already registered as {type(existing).__name__}, not {requested.__name__}"
        )
        self.name = name


class MetricNameCollisionError(Exception):
    """Raised when two distinct names would render under the same group and field.

    ``MetricName("a.b", "c", "x")`` and ``MetricName("a", "b.c", "x")`` both
    land in group ``a.b.c`` as field ``x``.
    """

    def __init__(self, name: MetricName, existing: MetricName):
        super().__init__(
            f"{name!r} would be written as {name}, which {existing!r} already uses"
        )
        self.name = name
        self.existing = existing


class MetricsRegistry:
    """Registry holding every instrument, keyed by MetricName.

    Registration takes a lock; reads iterate a copy so they never block
    writers for long.
    """

    def __init__(self, clock: Optional[Clock] = None):
        self.clock = clock or DEFAULT_CLOCK
        self._metrics: Dict[MetricName, Metric] = {}
        # (qualified_type, name) -> owner, the position a name takes in the document
        self._positions: Dict[Tuple[str, str], MetricName] = {}
        self._lock = threading.Lock()

    def counter(self, name: MetricName) -> Counter:
        return self._get_or_add(name, Counter, Counter)

    def gauge(self, name: MetricName, func: Callable[[], Any]) -> Gauge:
        return self._get_or_add(name, Gauge, lambda: Gauge(func))

    def histogram(self, name: MetricName, sample_size: int = Histogram.DEFAULT_SAMPLE_SIZE) -> Histogram:
        return self._get_or_add(name, Histogram, lambda: Histogram(sample_size))

    def meter(self, name: MetricName, event_type: str, rate_unit: TimeUnit = TimeUnit.SECONDS) -> Meter:
        return self._get_or_add(name, Meter, lambda: Meter(event_type, rate_unit, self.clock))

    def timer(
        self,
        name: MetricName,
        duration_unit: TimeUnit = TimeUnit.MILLISECONDS,
        rate_unit: TimeUnit = TimeUnit.SECONDS,
    ) -> Timer:
        return self._get_or_add(name, Timer, lambda: Timer(duration_unit, rate_unit, self.clock))

    def add(self, name: MetricName, metric: Metric) -> Metric:
        """Register an already-built instrument, returning the one that wins."""
        return self._get_or_add(name, type(metric), lambda: metric)

    def remove(self, name: MetricName) -> Optional[Metric]:
        with self._lock:
            removed = self._metrics.pop(name, None)
            if removed is not None:
                self._positions.pop(self._position(name), None)
            return removed

    def all_metrics(self) -> Dict[MetricName, Metric]:
        with self._lock:
            return dict(self._metrics)

    def grouped_metrics(self) -> Dict[str, Dict[MetricName, Metric]]:
        """Instruments grouped by qualified type.

        Groups are in lexicographic order and instruments within a group
        in order of their name.
        """
        grouped: Dict[str, Dict[MetricName, Metric]] = {}
        for name, metric in sorted(self.all_metrics().items(), key=lambda item: item[0].name):
            grouped.setdefault(name.qualified_type, {})[name] = metric
        return {group: grouped[group] for group in sorted(grouped)}

    @staticmethod
    def _position(name: MetricName) -> Tuple[str, str]:
        return (name.qualified_type, name.name)

    def _get_or_add(self, name: MetricName, kind: Type[M], factory: Callable[[], M]) -> M:
        with self._lock:
            existing = self._metrics.get(name)
            if existing is None:
                position = self._position(name)
                owner = self._positions.get(position)
                if owner is not None:
                    raise MetricNameCollisionError(name, owner)
                existing = factory()
                self._metrics[name] = existing
                self._positions[position] = name
            elif not isinstance(existing, kind):
                raise MetricTypeConflictError(name, existing, kind)
            return existing

    def reset(self) -> None:
        """Drop every instrument. Used for testing."""
        with self._lock:
            self._metrics.clear()
            self._positions.clear()
