"""Behavioural models of memory-mapped peripherals and processor bookkeeping for system simulation."""

__version__ = "0.1.0"