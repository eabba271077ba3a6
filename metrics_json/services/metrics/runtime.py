"""Runtime snapshot provider for the interpreter process.

Collects memory, thread, descriptor and garbage-collection figures with
psutil and the standard ``gc``/``threading`` modules. Time spent in each GC
generation is only known while the ``gc.callbacks`` hook is installed, so
the application calls ``start()`` at startup.
"""

import gc
import math
import os
import platform
import sys
import threading
import time
from datetime import timedelta
from enum import Enum
from types import FrameType
from typing import Dict, List, Optional

import psutil

from metrics_json.core.logging_config import get_logger
from .models import GarbageCollectorStatsModel, RuntimeSnapshotModel

logger = get_logger(__name__)


class ThreadState(str, Enum):
    RUNNABLE = "RUNNABLE"
    WAITING = "WAITING"


# (module file, function) pairs of standard-library code that sits directly
# above a blocking C call.
_WAITING_FRAMES = frozenset({
    ("threading.py", "wait"),
    ("threading.py", "wait_for"),
    ("threading.py", "acquire"),
    ("threading.py", "_wait_for_tstate_lock"),
    ("threading.py", "join"),
    ("queue.py", "get"),
    ("queue.py", "put"),
    ("selectors.py", "select"),
    ("socket.py", "accept"),
    ("subprocess.py", "_wait"),
})


def _thread_state(frame: Optional[FrameType]) -> ThreadState:
    """Best-effort state of a thread from its innermost Python frame.

    This is a heuristic. A thread blocked inside a C call made from its own
    code (``time.sleep``, a raw ``socket.recv``) has no standard-library frame
    on top and is reported RUNNABLE.
    """
    if frame is None:
        return ThreadState.RUNNABLE
    code = frame.f_code
    if (os.path.basename(code.co_filename), code.co_name) in _WAITING_FRAMES:
        return ThreadState.WAITING
    return ThreadState.RUNNABLE


class RuntimeMetrics:
    """Takes RuntimeSnapshotModel readings of the current process."""

    def __init__(self, process: Optional[psutil.Process] = None):
        self._process = process or psutil.Process()
        self._gc_time_ns: List[int] = [0] * len(gc.get_stats())
        self._gc_started_at: Optional[int] = None
        self._installed = False

    def start(self) -> None:
        """Install the GC timing hook."""
        if self._installed:
            return
        gc.callbacks.append(self._on_gc)
        self._installed = True
        logger.info("GC timing hook installed")

    def stop(self) -> None:
        """Remove the GC timing hook."""
        if not self._installed:
            return
        if self._on_gc in gc.callbacks:
            gc.callbacks.remove(self._on_gc)
        self._installed = False
        logger.info("GC timing hook removed")

    def _on_gc(self, phase: str, info: Dict[str, int]) -> None:
        if phase == "start":
            self._gc_started_at = time.perf_counter_ns()
        elif phase == "stop" and self._gc_started_at is not None:
            generation = info.get("generation", 0)
            if generation < len(self._gc_time_ns):
                self._gc_time_ns[generation] += time.perf_counter_ns() - self._gc_started_at
            self._gc_started_at = None

    def snapshot(self) -> RuntimeSnapshotModel:
        with self._process.oneshot():
            memory = self._process.memory_info()
            create_time = self._process.create_time()
            fd_usage = self._fd_usage()

        virtual = psutil.virtual_memory()
        swap = psutil.swap_memory()
        threads = threading.enumerate()

        return RuntimeSnapshotModel(
            name=platform.python_implementation(),
            version=platform.python_version(),
            rss=memory.rss,
            vms=memory.vms,
            total=virtual.total,
            available=virtual.available,
            heap_usage=memory.rss / virtual.total if virtual.total else 0.0,
            non_heap_usage=swap.percent / 100.0,
            memory_pool_usage={
                "virtual": virtual.percent / 100.0,
                "swap": swap.percent / 100.0,
            },
            thread_count=len(threads),
            daemon_thread_count=sum(1 for t in threads if t.daemon),
            thread_states=self._thread_state_fractions(threads),
            uptime=int(time.time() - create_time),
            fd_usage=fd_usage,
            garbage_collectors=self._garbage_collectors(),
        )

    def _fd_usage(self) -> float:
        try:
            open_fds = self._process.num_fds()
            soft_limit, _ = self._process.rlimit(psutil.RLIMIT_NOFILE)
        except (AttributeError, OSError, psutil.Error):
            # num_fds/rlimit are not available on every platform
            return math.nan
        if soft_limit <= 0:
            return math.nan
        return open_fds / soft_limit

    @staticmethod
    def _thread_state_fractions(threads: List[threading.Thread]) -> Dict[str, float]:
        counts = {state: 0 for state in ThreadState}
        frames = sys._current_frames()
        for thread in threads:
            counts[_thread_state(frames.get(thread.ident))] += 1
        total = len(threads) or 1
        return {state.value: count / total for state, count in counts.items()}

    def _garbage_collectors(self) -> Dict[str, GarbageCollectorStatsModel]:
        collectors = {}
        for generation, stats in enumerate(gc.get_stats()):
            elapsed_ns = self._gc_time_ns[generation] if generation < len(self._gc_time_ns) else 0
            collectors[f"gen{generation}"] = GarbageCollectorStatsModel(
                runs=stats["collections"],
                time=timedelta(microseconds=elapsed_ns / 1000),
            )
        return collectors
