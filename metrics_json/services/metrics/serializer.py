"""Serializes a metrics registry and runtime figures into one JSON document.

Usable outside the HTTP layer: anything that can supply a MetricsContext and
a DocumentWriter can produce the document.

Each instrument is first rendered into a RecordBuffer. Only a complete
record is committed to the output stream, so an instrument that fails
halfway through is left out instead of leaving the document unbalanced.
"""

from dataclasses import dataclass
from typing import Any, Optional, Protocol

from metrics_json.core.logging_config import get_logger
from .clock import Clock
from .dispatcher import dispatch
from .instruments import (
    Counter, Gauge, Histogram, Meter, Metered, Metric, MetricName, Summarizable, TimeUnit, Timer
)
from .models import RuntimeSnapshotModel
from .registry import MetricsRegistry
from .snapshot import Snapshot
from .writer import DocumentWriter, RecordBuffer

logger = get_logger(__name__)

RUNTIME_SELECTOR = "runtime"


def _unit_name(unit: TimeUnit) -> str:
    return str(getattr(unit, "value", unit)).lower()


class RuntimeSnapshotProvider(Protocol):
    def snapshot(self) -> RuntimeSnapshotModel: ...


@dataclass(frozen=True)
class MetricsContext:
    """Collaborators a document is built from."""

    clock: Clock
    runtime: RuntimeSnapshotProvider
    registry: MetricsRegistry


@dataclass(frozen=True)
class JsonContext:
    json: DocumentWriter
    show_full_samples: bool


@dataclass(frozen=True)
class MetricRecord:
    """Outcome of rendering one instrument: a record tree or the error."""

    name: MetricName
    value: Any = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class MetricsJsonGenerator:
    """Writes the runtime section and the per-group instrument section."""

    def __init__(self, runtime_selector: str = RUNTIME_SELECTOR):
        self.runtime_selector = runtime_selector

    def write_document(
        self,
        json: DocumentWriter,
        context: MetricsContext,
        class_prefix: Optional[str] = None,
        show_full_samples: bool = False,
        show_runtime: bool = True,
    ) -> None:
        """Write the complete top-level object and close the writer.

        The runtime section is included when ``show_runtime`` is set and the
        filter is either absent or the runtime selector.
        """
        json.begin_object()
        if show_runtime and (class_prefix is None or class_prefix == self.runtime_selector):
            self.write_runtime_metrics(json, context)
        self.write_regular_metrics(json, class_prefix, show_full_samples, context)
        json.end_object()
        json.close()

    def write_runtime_metrics(self, json: DocumentWriter, context: MetricsContext) -> None:
        """Write the ``runtime`` section, or nothing if no snapshot can be taken."""
        try:
            runtime = context.runtime.snapshot()
        except Exception:
            logger.warning("Error reading runtime metrics", exc_info=True)
            return

        json.field("runtime")
        json.begin_object()

        json.field("vm")
        json.begin_object()
        json.write_field("name", runtime.name)
        json.write_field("version", runtime.version)
        json.end_object()

        json.field("memory")
        json.begin_object()
        json.write_field("rss", runtime.rss)
        json.write_field("vms", runtime.vms)
        json.write_field("total", runtime.total)
        json.write_field("available", runtime.available)
        json.write_field("heap_usage", runtime.heap_usage)
        json.write_field("non_heap_usage", runtime.non_heap_usage)
        json.field("memory_pool_usages")
        json.begin_object()
        for pool, usage in runtime.memory_pool_usage.items():
            json.write_field(pool, usage)
        json.end_object()
        json.end_object()

        if runtime.buffer_pools:
            json.field("buffers")
            json.begin_object()
            for pool in ("direct", "mapped"):
                stats = runtime.buffer_pools.get(pool)
                if stats is None:
                    continue
                json.field(pool)
                json.begin_object()
                json.write_field("count", stats.count)
                json.write_field("memoryUsed", stats.memory_used)
                json.write_field("totalCapacity", stats.total_capacity)
                json.end_object()
            json.end_object()

        json.write_field("daemon_thread_count", runtime.daemon_thread_count)
        json.write_field("thread_count", runtime.thread_count)
        json.write_field("current_time", context.clock.time())
        json.write_field("uptime", runtime.uptime)
        json.write_field("fd_usage", runtime.fd_usage)

        json.field("thread-states")
        json.begin_object()
        for state, fraction in runtime.thread_states.items():
            json.write_field(state.lower(), fraction)
        json.end_object()

        json.field("garbage-collectors")
        json.begin_object()
        for collector, stats in runtime.garbage_collectors.items():
            json.field(collector)
            json.begin_object()
            json.write_field("runs", stats.runs)
            json.write_field("time", stats.time_ms)
            json.end_object()
        json.end_object()

        json.end_object()

    def write_regular_metrics(
        self,
        json: DocumentWriter,
        class_prefix: Optional[str],
        show_full_samples: bool,
        context: MetricsContext,
    ) -> None:
        grouped = context.registry.grouped_metrics()
        for group in sorted(grouped):
            if class_prefix is not None and not group.startswith(class_prefix):
                continue
            json.field(group)
            json.begin_object()
            for name, metric in sorted(grouped[group].items(), key=lambda item: item[0].name):
                record = self.render_metric(name, metric, show_full_samples)
                if record.ok:
                    json.write_field(name.name, record.value)
                else:
                    logger.warning(f"Error writing out {name}", exc_info=record.error)
            json.end_object()

    def render_metric(self, name: MetricName, metric: Metric, show_full_samples: bool) -> MetricRecord:
        """Render one instrument into a standalone record tree."""
        buffer = RecordBuffer()
        try:
            dispatch(metric, name, self, JsonContext(buffer, show_full_samples))
            return MetricRecord(name, value=buffer.result())
        except Exception as e:
            return MetricRecord(name, error=e)

    def process_counter(self, name: MetricName, counter: Counter, context: JsonContext) -> None:
        json = context.json
        json.begin_object()
        json.write_field("type", "counter")
        json.write_field("count", counter.count)
        json.end_object()

    def process_gauge(self, name: MetricName, gauge: Gauge, context: JsonContext) -> None:
        json = context.json
        json.begin_object()
        json.write_field("type", "gauge")
        json.write_field("value", self._evaluate_gauge(gauge))
        json.end_object()

    def process_histogram(self, name: MetricName, histogram: Histogram, context: JsonContext) -> None:
        json = context.json
        snapshot = histogram.snapshot()
        json.begin_object()
        json.write_field("type", "histogram")
        json.write_field("count", histogram.count)
        self._write_summarizable(histogram, json)
        self._write_sampling(snapshot, json)
        if context.show_full_samples:
            json.write_field("values", snapshot.values)
        json.end_object()

    def process_meter(self, name: MetricName, meter: Meter, context: JsonContext) -> None:
        json = context.json
        json.begin_object()
        json.write_field("type", "meter")
        json.write_field("event_type", meter.event_type)
        self._write_metered_fields(meter, json)
        json.end_object()

    def process_timer(self, name: MetricName, timer: Timer, context: JsonContext) -> None:
        json = context.json
        snapshot = timer.snapshot()
        json.begin_object()
        json.write_field("type", "timer")

        json.field("duration")
        json.begin_object()
        json.write_field("unit", _unit_name(timer.duration_unit))
        self._write_summarizable(timer, json)
        self._write_sampling(snapshot, json)
        if context.show_full_samples:
            json.write_field("values", snapshot.values)
        json.end_object()

        json.field("rate")
        json.begin_object()
        self._write_metered_fields(timer, json)
        json.end_object()

        json.end_object()

    @staticmethod
    def _evaluate_gauge(gauge: Gauge) -> Any:
        try:
            return gauge.value
        except Exception as e:
            logger.warning("Error evaluating gauge", exc_info=True)
            return f"error reading gauge: {e}"

    @staticmethod
    def _write_summarizable(metric: Summarizable, json: DocumentWriter) -> None:
        json.write_field("min", metric.min)
        json.write_field("max", metric.max)
        json.write_field("mean", metric.mean)
        json.write_field("std_dev", metric.std_dev)

    @staticmethod
    def _write_sampling(snapshot: Snapshot, json: DocumentWriter) -> None:
        json.write_field("median", snapshot.median)
        json.write_field("p75", snapshot.p75)
        json.write_field("p95", snapshot.p95)
        json.write_field("p98", snapshot.p98)
        json.write_field("p99", snapshot.p99)
        json.write_field("p999", snapshot.p999)

    @staticmethod
    def _write_metered_fields(metered: Metered, json: DocumentWriter) -> None:
        json.write_field("unit", _unit_name(metered.rate_unit))
        json.write_field("count", metered.count)
        json.write_field("mean", metered.mean_rate)
        json.write_field("m1", metered.one_minute_rate)
        json.write_field("m5", metered.five_minute_rate)
        json.write_field("m15", metered.fifteen_minute_rate)
