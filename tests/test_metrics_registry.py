"""
Unit tests for MetricsRegistry.

Covers get-or-create semantics, variant conflicts and the ordering of the
grouped view the serializer iterates.
"""

import pytest

from metrics_json.services.metrics.instruments import Counter, Histogram, MetricName, TimeUnit
from metrics_json.services.metrics.registry import (
    MetricNameCollisionError, MetricsRegistry, MetricTypeConflictError
)


def test_get_or_create_returns_same_instrument(registry):
    name = MetricName("com.example", "Service", "requests")

    first = registry.counter(name)
    first.inc()
    second = registry.counter(name)

    assert first is second
    assert second.count == 1


def test_registering_other_variant_raises(registry):
    name = MetricName("com.example", "Service", "requests")
    registry.counter(name)

    with pytest.raises(MetricTypeConflictError):
        registry.histogram(name)


def test_add_and_remove(registry):
    name = MetricName("com.example", "Service", "sizes")
    histogram = Histogram()

    assert registry.add(name, histogram) is histogram
    assert registry.all_metrics() == {name: histogram}
    assert registry.remove(name) is histogram
    assert registry.all_metrics() == {}
    assert registry.remove(name) is None


def test_meter_and_timer_use_registry_clock(registry, clock):
    meter = registry.meter(MetricName("a", "B", "m"), "events", TimeUnit.MINUTES)
    timer = registry.timer(MetricName("a", "B", "t"))

    meter.mark(5)
    clock.advance(6)
    with timer.time():
        clock.advance(0.5)

    assert meter.rate_unit is TimeUnit.MINUTES
    assert meter.one_minute_rate == pytest.approx(60.0)
    assert timer.max == pytest.approx(500.0)


def test_grouped_metrics_sorted_by_group_then_name(registry):
    """Groups are qualified types in lexicographic order, names sorted within."""
    registry.counter(MetricName("org.zeta", "Worker", "b"))
    registry.counter(MetricName("com.example", "Service", "zeta"))
    registry.counter(MetricName("com.example", "Service", "alpha"))
    registry.counter(MetricName("com.example", "Client", "calls"))

    grouped = registry.grouped_metrics()

    assert list(grouped) == ["com.example.Client", "com.example.Service", "org.zeta.Worker"]
    assert [n.name for n in grouped["com.example.Service"]] == ["alpha", "zeta"]
    assert all(isinstance(m, Counter) for m in grouped["com.example.Service"].values())


def test_scope_splits_groups(registry):
    registry.counter(MetricName("com.example", "Service", "hits", scope="admin"))
    registry.counter(MetricName("com.example", "Service", "hits"))

    assert list(registry.grouped_metrics()) == ["com.example.Service", "com.example.Service.admin"]


def test_reset_clears_everything(registry):
    registry.counter(MetricName("a", "B", "c"))
    registry.reset()

    assert registry.grouped_metrics() == {}


def test_names_writing_to_same_field_are_rejected(registry):
    """Distinct names that share group and field cannot both be registered."""
    registry.counter(MetricName("a.b", "c", "x")).inc(1)

    with pytest.raises(MetricNameCollisionError):
        registry.counter(MetricName("a", "b.c", "x"))

    grouped = registry.grouped_metrics()
    assert list(grouped) == ["a.b.c"]
    assert [n.name for n in grouped["a.b.c"]] == ["x"]


def test_collision_slot_freed_by_remove(registry):
    registry.counter(MetricName("a.b", "c", "x"))
    registry.remove(MetricName("a.b", "c", "x"))

    assert isinstance(registry.counter(MetricName("a", "b.c", "x")), Counter)


def test_names_in_shared_group_sorted_by_name(registry):
    """A group fed by differently split names is still ordered by name."""
    registry.counter(MetricName("a.b", "c", "y"))
    registry.counter(MetricName("a", "b.c", "x"))
    registry.counter(MetricName("a.b", "c", "a"))

    assert [n.name for n in registry.grouped_metrics()["a.b.c"]] == ["a", "x", "y"]
