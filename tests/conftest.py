from datetime import timedelta

import pytest

from metrics_json.services.metrics import (
    MetricsContext,
    MetricsRegistry,
    get_clock,
    get_default_registry,
    get_runtime_metrics,
    set_clock,
    set_default_registry,
    set_runtime_metrics,
)
from metrics_json.services.metrics.models import (
    BufferPoolStatsModel,
    GarbageCollectorStatsModel,
    RuntimeSnapshotModel,
)


class ManualClock:
    """Clock that only moves when told to."""

    def __init__(self, tick_ns: int = 0, time_ms: int = 1_700_000_000_000):
        self.tick_ns = tick_ns
        self.time_ms = time_ms

    def tick(self) -> int:
        return self.tick_ns

    def time(self) -> int:
        return self.time_ms

    def advance(self, seconds: float) -> None:
        self.tick_ns += int(seconds * 1_000_000_000)
        self.time_ms += int(seconds * 1000)


class StaticRuntime:
    """Runtime provider returning a fixed snapshot."""

    def __init__(self, snapshot: RuntimeSnapshotModel):
        self._snapshot = snapshot

    def snapshot(self) -> RuntimeSnapshotModel:
        return self._snapshot


def make_runtime_snapshot(**overrides) -> RuntimeSnapshotModel:
    fields = dict(
        name="CPython",
        version="3.12.1",
        rss=50_000_000,
        vms=400_000_000,
        total=8_000_000_000,
        available=6_000_000_000,
        heap_usage=0.00625,
        non_heap_usage=0.0,
        memory_pool_usage={"virtual": 0.25, "swap": 0.0},
        buffer_pools={},
        thread_count=4,
        daemon_thread_count=1,
        thread_states={"RUNNABLE": 0.75, "WAITING": 0.25},
        uptime=120,
        fd_usage=0.01,
        garbage_collectors={
            "gen0": GarbageCollectorStatsModel(runs=40, time=timedelta(milliseconds=12)),
            "gen1": GarbageCollectorStatsModel(runs=3, time=timedelta(milliseconds=4)),
            "gen2": GarbageCollectorStatsModel(runs=1, time=timedelta(milliseconds=1500)),
        },
    )
    fields.update(overrides)
    return RuntimeSnapshotModel(**fields)


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def registry(clock):
    return MetricsRegistry(clock=clock)


@pytest.fixture
def runtime():
    return StaticRuntime(make_runtime_snapshot())


@pytest.fixture
def context(clock, runtime, registry):
    return MetricsContext(clock=clock, runtime=runtime, registry=registry)


@pytest.fixture
def buffer_pools():
    return {
        "direct": BufferPoolStatsModel(count=3, memory_used=4096, total_capacity=8192),
        "mapped": BufferPoolStatsModel(count=1, memory_used=1024, total_capacity=1024),
    }


@pytest.fixture
def default_collaborators(clock, runtime, registry):
    """Install test collaborators as the process-wide defaults."""
    previous = (get_default_registry(), get_runtime_metrics(), get_clock())
    set_default_registry(registry)
    set_runtime_metrics(runtime)
    set_clock(clock)
    yield registry
    set_default_registry(previous[0])
    set_runtime_metrics(previous[1])
    set_clock(previous[2])


@pytest.fixture
def runtime_factory():
    """Build a StaticRuntime whose snapshot overrides the given fields."""
    def factory(**overrides):
        return StaticRuntime(make_runtime_snapshot(**overrides))
    return factory
