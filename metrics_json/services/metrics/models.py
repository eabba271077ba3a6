"""Pydantic V2 models for runtime snapshots and API responses.

Runtime models are frozen: one snapshot is taken per document and must not
change while it is being written.
"""

from datetime import timedelta
from typing import Dict
from pydantic import BaseModel, ConfigDict, Field


class BufferPoolStatsModel(BaseModel):
    """Usage of one native buffer pool"""
    model_config = ConfigDict(frozen=True)

    count: int
    memory_used: int
    total_capacity: int


class GarbageCollectorStatsModel(BaseModel):
    """Collections run and time spent by one collector"""
    model_config = ConfigDict(frozen=True)

    runs: int
    time: timedelta

    @property
    def time_ms(self) -> int:
        return self.time // timedelta(milliseconds=1)


class RuntimeSnapshotModel(BaseModel):
    """Point-in-time figures for the interpreter process and its host.

    Fractions are in [0, 1]; ``fd_usage`` is NaN when the platform cannot
    report descriptor limits.
    """
    model_config = ConfigDict(frozen=True)

    name: str
    version: str

    rss: int
    vms: int
    total: int
    available: int
    heap_usage: float
    non_heap_usage: float
    memory_pool_usage: Dict[str, float] = Field(default_factory=dict)

    buffer_pools: Dict[str, BufferPoolStatsModel] = Field(default_factory=dict)

    thread_count: int
    daemon_thread_count: int
    thread_states: Dict[str, float] = Field(default_factory=dict)

    uptime: int
    fd_usage: float

    garbage_collectors: Dict[str, GarbageCollectorStatsModel] = Field(default_factory=dict)


class MetricsHealthModel(BaseModel):
    """Lightweight health check response"""
    model_config = ConfigDict(from_attributes=True)

    metric_count: int
    group_count: int
    runtime_enabled: bool
    version: str
