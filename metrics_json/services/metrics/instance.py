"""Module-level default collaborators for the metrics document.

The HTTP layer resolves these through FastAPI dependencies. The serializer
itself only ever receives them through a MetricsContext.
"""

from .clock import Clock, DEFAULT_CLOCK
from .registry import MetricsRegistry
from .runtime import RuntimeMetrics

# Module-level singletons - replaced wholesale in tests
_registry: MetricsRegistry = MetricsRegistry()
_runtime: RuntimeMetrics = RuntimeMetrics()
_clock: Clock = DEFAULT_CLOCK


def get_default_registry() -> MetricsRegistry:
    """Get the process-wide registry that application code registers into."""
    return _registry


def set_default_registry(registry: MetricsRegistry) -> None:
    """Replace the process-wide registry.

    Args:
        registry: The registry to serve from now on
    """
    global _registry
    _registry = registry


def get_runtime_metrics() -> RuntimeMetrics:
    return _runtime


def set_runtime_metrics(runtime: RuntimeMetrics) -> None:
    global _runtime
    _runtime = runtime


def get_clock() -> Clock:
    return _clock


def set_clock(clock: Clock) -> None:
    global _clock
    _clock = clock
