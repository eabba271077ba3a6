"""Routes an instrument to the processor method for its variant."""

from typing import Any, Protocol, TypeVar

from .instruments import Counter, Gauge, Histogram, Meter, Metric, MetricName, Timer

C = TypeVar("C", contravariant=True)


class UnsupportedMetricError(TypeError):
    """Raised for an object outside the closed set of instrument variants."""

    def __init__(self, name: MetricName, metric: Any):
        super().__init__(f"Unsupported metric type {type(metric).__name__} for {name}")
        self.name = name
        self.metric = metric


class MetricProcessor(Protocol[C]):
    """One handler per instrument variant."""

    def process_counter(self, name: MetricName, counter: Counter, context: C) -> Any: ...

    def process_gauge(self, name: MetricName, gauge: Gauge, context: C) -> Any: ...

    def process_histogram(self, name: MetricName, histogram: Histogram, context: C) -> Any: ...

    def process_meter(self, name: MetricName, meter: Meter, context: C) -> Any: ...

    def process_timer(self, name: MetricName, timer: Timer, context: C) -> Any: ...


def dispatch(metric: Metric, name: MetricName, processor: MetricProcessor[C], context: C) -> Any:
    """Call the ``processor`` method matching ``metric``'s variant.

    Raises:
        UnsupportedMetricError: if ``metric`` is not one of the five variants
    """
    if isinstance(metric, Counter):
        return processor.process_counter(name, metric, context)
    if isinstance(metric, Gauge):
        return processor.process_gauge(name, metric, context)
    if isinstance(metric, Histogram):
        return processor.process_histogram(name, metric, context)
    if isinstance(metric, Meter):
        return processor.process_meter(name, metric, context)
    if isinstance(metric, Timer):
        return processor.process_timer(name, metric, context)
    raise UnsupportedMetricError(name, metric)
