"""Frequency/voltage operating points of the simulated processors."""

from __future__ import annotations

_ARM_CPU_FVS: tuple[int, ...] = (25, 50, 100, 150, 200, 250, 300, 0)
"""Clock frequencies in MHz, slowest first; the trailing 0 is the idle level."""


def get_cpu_nb_fv_levels(cpufamily: str, cpumodel: str) -> int:
    """Number of running frequency levels, not counting the idle level."""
    return len(_ARM_CPU_FVS) - 1


def get_cpu_boot_fv_level(cpufamily: str, cpumodel: str) -> int:
    """Level a processor starts at: the fastest running level."""
    return len(_ARM_CPU_FVS) - 2


def get_cpu_fv_percents(cpufamily: str, cpumodel: str) -> list[float]:
    """Speed of every level, idle included, as a percentage of the fastest."""
    fvs = get_cpu_fvs(cpufamily, cpumodel)
    peak = max(fvs)
    return [(fv * 100) / peak for fv in fvs]


def get_cpu_fvs(cpufamily: str, cpumodel: str) -> list[int]:
    """Frequency in MHz of every level, idle included, as a fresh list."""
    return list(_ARM_CPU_FVS)