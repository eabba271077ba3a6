"""Instrument registry and JSON document serialization.

Application code records into instruments held by a MetricsRegistry; the
MetricsJsonGenerator turns the registry (plus runtime figures) into one
JSON document per request.
"""

from .clock import Clock, SystemClock
from .dispatcher import MetricProcessor, UnsupportedMetricError, dispatch
from .instruments import (
    Counter, Gauge, Histogram, Meter, Metric, MetricName, TimeUnit, Timer
)
from .registry import MetricNameCollisionError, MetricsRegistry, MetricTypeConflictError
from .runtime import RuntimeMetrics
from .serializer import MetricRecord, MetricsContext, MetricsJsonGenerator
from .snapshot import Snapshot
from .writer import DocumentStructureError, DocumentWriter, JsonDocumentWriter, RecordBuffer
from .instance import (
    get_clock,
    get_default_registry,
    get_runtime_metrics,
    set_clock,
    set_default_registry,
    set_runtime_metrics,
)

__all__ = [
    # Instruments
    "Counter",
    "Gauge",
    "Histogram",
    "Meter",
    "Metric",
    "MetricName",
    "Snapshot",
    "TimeUnit",
    "Timer",
    # Registry and collaborators
    "Clock",
    "SystemClock",
    "MetricsRegistry",
    "MetricNameCollisionError",
    "MetricTypeConflictError",
    "RuntimeMetrics",
    # Serialization
    "DocumentStructureError",
    "DocumentWriter",
    "JsonDocumentWriter",
    "RecordBuffer",
    "MetricProcessor",
    "MetricRecord",
    "MetricsContext",
    "MetricsJsonGenerator",
    "UnsupportedMetricError",
    "dispatch",
    # Defaults
    "get_clock",
    "get_default_registry",
    "get_runtime_metrics",
    "set_clock",
    "set_default_registry",
    "set_runtime_metrics",
]
