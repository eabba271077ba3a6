"""
Unit tests for instrument variants, snapshots and metric names.

Uses a manual clock so meter rates are exact.
"""

import math

import pytest

from metrics_json.services.metrics.instruments import (
    Counter, Gauge, Histogram, Meter, MetricName, TimeUnit, Timer
)
from metrics_json.services.metrics.snapshot import Snapshot


def test_snapshot_quantiles_interpolate():
    """Quantiles use (n + 1) positions with linear interpolation."""
    snapshot = Snapshot([5, 1, 4, 2, 3])

    assert snapshot.values == [1, 2, 3, 4, 5]
    assert snapshot.size == 5
    assert snapshot.median == 3.0
    assert snapshot.p75 == pytest.approx(4.5)
    assert snapshot.p99 == 5.0
    assert snapshot.value(0.0) == 1.0


def test_empty_snapshot_is_zero():
    snapshot = Snapshot([])

    assert snapshot.median == 0.0
    assert snapshot.p999 == 0.0
    assert snapshot.values == []


def test_snapshot_rejects_bad_quantile():
    with pytest.raises(ValueError):
        Snapshot([1.0]).value(1.5)


def test_counter_inc_and_dec():
    counter = Counter()
    counter.inc()
    counter.inc(4)
    counter.dec(2)

    assert counter.count == 3

    counter.clear()
    assert counter.count == 0


def test_gauge_evaluates_lazily():
    """The gauge's callable runs on every read."""
    calls = []

    def read():
        calls.append(1)
        return len(calls)

    gauge = Gauge(read)
    assert calls == []
    assert gauge.value == 1
    assert gauge.value == 2


def test_histogram_summary_statistics():
    histogram = Histogram()
    for value in [1, 2, 3, 4, 5]:
        histogram.update(value)

    assert histogram.count == 5
    assert histogram.min == 1.0
    assert histogram.max == 5.0
    assert histogram.mean == pytest.approx(3.0)
    assert histogram.std_dev == pytest.approx(math.sqrt(2.5))
    assert histogram.sum == 15


def test_histogram_snapshot_keeps_most_recent_values():
    """Summary covers every update; the snapshot only the sliding window."""
    histogram = Histogram(sample_size=3)
    for value in [1, 2, 3, 4, 5]:
        histogram.update(value)

    assert histogram.snapshot().values == [3, 4, 5]
    assert histogram.count == 5
    assert histogram.min == 1.0


def test_empty_histogram_reports_zeros():
    histogram = Histogram()

    assert histogram.count == 0
    assert histogram.min == 0.0
    assert histogram.max == 0.0
    assert histogram.mean == 0.0
    assert histogram.std_dev == 0.0


def test_meter_rates_after_first_tick(clock):
    """The first 5-second tick seeds every moving average with the instant rate."""
    meter = Meter("requests", TimeUnit.SECONDS, clock)
    meter.mark(5)

    clock.advance(6)

    assert meter.count == 5
    assert meter.one_minute_rate == pytest.approx(1.0)
    assert meter.five_minute_rate == pytest.approx(1.0)
    assert meter.fifteen_minute_rate == pytest.approx(1.0)
    assert meter.mean_rate == pytest.approx(5 / 6)


def test_meter_rates_decay_without_events(clock):
    meter = Meter("requests", TimeUnit.SECONDS, clock)
    meter.mark(5)
    clock.advance(6)
    assert meter.one_minute_rate == pytest.approx(1.0)

    clock.advance(5)

    assert meter.one_minute_rate == pytest.approx(math.exp(-5.0 / 60.0))
    assert meter.fifteen_minute_rate == pytest.approx(math.exp(-5.0 / 60.0 / 15))


def test_meter_rate_unit_scales_rates(clock):
    meter = Meter("requests", TimeUnit.MINUTES, clock)
    meter.mark(5)
    clock.advance(6)

    assert meter.one_minute_rate == pytest.approx(60.0)


def test_timer_reports_in_duration_unit(clock):
    timer = Timer(TimeUnit.MILLISECONDS, TimeUnit.SECONDS, clock)
    timer.update(2, TimeUnit.SECONDS)
    timer.update(500, TimeUnit.MILLISECONDS)

    assert timer.count == 2
    assert timer.min == pytest.approx(500.0)
    assert timer.max == pytest.approx(2000.0)
    assert timer.mean == pytest.approx(1250.0)
    assert timer.snapshot().values == pytest.approx([500.0, 2000.0])
    assert timer.event_type == "calls"


def test_timer_ignores_negative_durations(clock):
    timer = Timer(clock=clock)
    timer.update(-1, TimeUnit.SECONDS)

    assert timer.count == 0


def test_timer_context_manager_uses_clock(clock):
    timer = Timer(TimeUnit.MILLISECONDS, clock=clock)

    with timer.time():
        clock.advance(0.25)

    assert timer.count == 1
    assert timer.max == pytest.approx(250.0)


def test_time_unit_convert():
    assert TimeUnit.MILLISECONDS.convert(2, TimeUnit.SECONDS) == 2000
    assert TimeUnit.SECONDS.convert(1500, TimeUnit.MILLISECONDS) == 1.5
    assert TimeUnit.SECONDS.value == "seconds"


def test_metric_name_qualified_type_and_order():
    plain = MetricName("com.example", "Service", "requests")
    scoped = MetricName("com.example", "Service", "requests", scope="admin")

    assert plain.qualified_type == "com.example.Service"
    assert scoped.qualified_type == "com.example.Service.admin"
    assert sorted([MetricName("b", "T", "x"), plain, MetricName("a", "T", "z")])[0].group == "a"
    assert plain < scoped
    assert plain == MetricName("com.example", "Service", "requests")


def test_metric_name_for_class():
    name = MetricName.for_class(Counter, "hits")

    assert name.group == Counter.__module__
    assert name.type == "Counter"
    assert name.name == "hits"
