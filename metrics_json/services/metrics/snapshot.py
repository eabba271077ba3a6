"""Immutable statistical snapshot of a sample population."""

import math
from typing import Iterable, List


class Snapshot:
    """Sorted copy of a sample with quantile accessors.

    Quantiles interpolate linearly between the two closest ranks, using
    ``q * (n + 1)`` as the 1-based position.
    """

    MEDIAN_Q = 0.5
    P75_Q = 0.75
    P95_Q = 0.95
    P98_Q = 0.98
    P99_Q = 0.99
    P999_Q = 0.999

    def __init__(self, values: Iterable[float]):
        self._values: List[float] = sorted(values)

    def value(self, quantile: float) -> float:
        if quantile < 0.0 or quantile > 1.0 or math.isnan(quantile):
            raise ValueError(f"{quantile} is not in [0..1]")

        if not self._values:
            return 0.0

        pos = quantile * (len(self._values) + 1)

        if pos < 1:
            return float(self._values[0])

        if pos >= len(self._values):
            return float(self._values[-1])

        lower = self._values[int(pos) - 1]
        upper = self._values[int(pos)]
        return lower + (pos - math.floor(pos)) * (upper - lower)

    @property
    def size(self) -> int:
        return len(self._values)

    @property
    def values(self) -> List[float]:
        return list(self._values)

    @property
    def median(self) -> float:
        return self.value(self.MEDIAN_Q)

    @property
    def p75(self) -> float:
        return self.value(self.P75_Q)

    @property
    def p95(self) -> float:
        return self.value(self.P95_Q)

    @property
    def p98(self) -> float:
        return self.value(self.P98_Q)

    @property
    def p99(self) -> float:
        return self.value(self.P99_Q)

    @property
    def p999(self) -> float:
        return self.value(self.P999_Q)

    def __repr__(self) -> str:
        return f"Snapshot(size={self.size})"
