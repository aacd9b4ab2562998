"""Per-processor bookkeeping of the time spent at each frequency level."""

from __future__ import annotations

import logging
from typing import Optional

from .cpu_fvs import (
    get_cpu_boot_fv_level,
    get_cpu_fv_percents,
    get_cpu_fvs,
    get_cpu_nb_fv_levels,
)

log = logging.getLogger(__name__)

_U32 = 0xFFFFFFFF
_U64 = (1 << 64) - 1


class CpuLogs:
    """Time, in nanoseconds, that every processor spent at every level.

    The last level of each row is the idle level.
    """

    def __init__(self, ncpu: int, cpufamily: str, cpumodel: str) -> None:
        if ncpu <= 0:
            raise ValueError("the number of processors must be positive")
        self.ncpu = ncpu
        self.cpu_nb_fv_levels = get_cpu_nb_fv_levels(cpufamily, cpumodel)
        self.cpu_boot_fv_level = get_cpu_boot_fv_level(cpufamily, cpumodel)
        self.cpu_fv_percents = get_cpu_fv_percents(cpufamily, cpumodel)
        self.cpu_fvs = get_cpu_fvs(cpufamily, cpumodel)
        self.cycles_max_fv_per_ns = self.cpu_fvs[self.cpu_nb_fv_levels - 1] / 1000.0

        levels = self.cpu_nb_fv_levels + 1
        self.ns_time_at_fv = [[0] * levels for _ in range(ncpu)]
        self._prev = [[0] * levels for _ in range(ncpu)]
        self._measure = [[0] * levels for _ in range(ncpu)]
        self._high_words: list[Optional[int]] = [None] * ncpu

    def add_time_at_fv(self, cpu: int, fv_level: int, time: int) -> None:
        """Account ``time`` nanoseconds spent by ``cpu`` at ``fv_level``."""
        row = self.ns_time_at_fv[cpu]
        row[fv_level] = (row[fv_level] + time) & _U64

    def get_cpu_ncycles(self, cpu: int) -> int:
        """Return the cycle count of ``cpu`` as two 32-bit halves.

        The first call computes the count and returns its low word; the next
        call returns the matching high word.
        """
        high = self._high_words[cpu]
        if high is not None:
            self._high_words[cpu] = None
            return high

        total = 0
        for time, percent in zip(self.ns_time_at_fv[cpu], self.cpu_fv_percents):
            total += int(time * percent * self.cycles_max_fv_per_ns) & _U64
        total &= _U64
        self._high_words[cpu] = total >> 32
        return total & _U32

    def update_fv_grf(self) -> list[int]:
        """Return each processor's average speed, in percent, since the last call."""
        averages = []
        for cur, prev in zip(self.ns_time_at_fv, self._prev):
            weighted = 0.0
            elapsed = 0.0
            for now, before, percent in zip(cur, prev, self.cpu_fv_percents):
                diff = now - before
                weighted += diff * percent
                elapsed += diff
            averages.append(int(weighted / elapsed) & 0xFF if elapsed else 0)
        self._prev = [row.copy() for row in self.ns_time_at_fv]
        return averages

    def start_measure(self) -> None:
        """Start a measurement window over all processors."""
        self._measure = [row.copy() for row in self.ns_time_at_fv]

    def stop_measure(self) -> int:
        """Return the average speed since ``start_measure``, in hundredths of a percent."""
        weighted = 0.0
        elapsed = 0.0
        for cur, start in zip(reversed(self.ns_time_at_fv), reversed(self._measure)):
            for now, before, percent in zip(cur, start, self.cpu_fv_percents):
                diff = now - before
                weighted += diff * percent
                elapsed += diff
        if not elapsed:
            raise ZeroDivisionError("no time was recorded since start_measure")
        return int(weighted / elapsed * 100)