"""Periodic timer bus slave."""

from __future__ import annotations

import logging
from enum import IntEnum, IntFlag
from typing import Optional

from .slave import BUS_WIDTH, DeviceError, SimClock, SlaveDevice

log = logging.getLogger(__name__)

TIMER_DIV = 10
"""Divider applied to the system clock to get the timer tick rate."""

PS_PER_SECOND = 1_000_000_000_000

_U64 = 1 << 64


class TimerRegister(IntEnum):
    """Word offsets of the timer registers."""

    VALUE = 0
    MODE = 1
    PERIOD = 2
    RESETIRQ = 3
    SPAN = 4


class TimerMode(IntFlag):
    """Bits of the mode register."""

    RUNNING = 1
    IRQ_ENABLED = 2


class TimerDevice(SlaveDevice):
    """A timer that counts ticks of the divided system clock and raises an
    interrupt at the end of every period."""

    def __init__(self, name: str, system_clock_hz: int,
                 clock: Optional[SimClock] = None) -> None:
        super().__init__(name)
        if clock is not None:
            self.clock = clock
        ticks_per_second = system_clock_hz // TIMER_DIV
        if ticks_per_second <= 0 or ticks_per_second > PS_PER_SECOND:
            raise ValueError(f"unsupported system clock {system_clock_hz} Hz")
        self.system_clock_hz = system_clock_hz
        self._ticks_per_second = ticks_per_second
        self._tick_ps = PS_PER_SECOND // ticks_per_second

        self.period = 0
        self.mode = 0
        self.irq = False
        self._last_period = 0
        self._next_period = 0
        self._deadline: Optional[int] = None

    # bus interface

    def rcv_rqst(self, ofs: int, be: int, data: bytes, write: bool) -> Optional[bytes]:
        idx = ofs >> 2
        high = bool(be & 0xF0)
        if high:
            idx += 1
        if write:
            lane = bytes(data[4:8] if high else data[0:4]).ljust(4, b"\0")
            self._write(ofs, be, idx, int.from_bytes(lane, "little"))
            return None
        out = bytearray(BUS_WIDTH)
        pos = 4 if high else 0
        out[pos:pos + 4] = self._read(ofs, be, idx).to_bytes(4, "little")
        return bytes(out)

    def _write(self, ofs: int, be: int, idx: int, value: int) -> None:
        now = self.clock.now
        if idx == TimerRegister.VALUE:
            log.debug("unsupported write to VALUE register")
        elif idx == TimerRegister.MODE:
            log.debug("mode write: %x", value)
            if (self.mode ^ value) & TimerMode.RUNNING:
                if value & TimerMode.RUNNING:
                    self._last_period = now
                self.mode = value & 0x3
                self._reconfigure()
            else:
                self.mode = value & 0x3
        elif idx == TimerRegister.PERIOD:
            self.period = value
            self._next_period = (now - self._last_period) + self._tick_ps * value
            log.debug("period write: %d", value)
            self._reconfigure()
        elif idx == TimerRegister.RESETIRQ:
            self.irq = False
        else:
            raise DeviceError(f"bad {self.name} write ofs=0x{ofs:X}, be=0x{be:X}")

    def _read(self, ofs: int, be: int, idx: int) -> int:
        if idx == TimerRegister.VALUE:
            elapsed = self.clock.now - self._last_period
            ticks = (elapsed // 1000) * self._ticks_per_second // 1_000_000_000
            return ticks & 0xFFFFFFFF
        if idx == TimerRegister.MODE:
            return self.mode
        if idx == TimerRegister.PERIOD:
            return self.period
        if idx == TimerRegister.RESETIRQ:
            return int(self.irq)
        raise DeviceError(f"bad {self.name} read ofs=0x{ofs:X}, be=0x{be:X}")

    # time keeping

    def _reconfigure(self) -> None:
        self.irq = False
        self._arm()

    def _arm(self) -> None:
        if self.period == 0:
            self._deadline = None
            return
        now = self.clock.now
        wait = (self._next_period - (now - self._last_period)) % _U64
        self._deadline = now + wait

    def _expire(self) -> None:
        now = self.clock.now
        if self.mode & TimerMode.IRQ_ENABLED:
            log.debug("timer raises an IRQ at %d ps", now - self._last_period)
            self.irq = True
        self._next_period = (now - self._last_period) + self._tick_ps * self.period
        self._arm()

    def run_until(self, ps: int) -> int:
        """Advance simulated time to ``ps`` and return how many periods ended."""
        if ps < self.clock.now:
            raise ValueError("simulated time cannot go backwards")
        expired = 0
        while self._deadline is not None and self._deadline <= ps:
            self.clock.advance(self._deadline - self.clock.now)
            self._expire()
            expired += 1
        self.clock.advance(ps - self.clock.now)
        return expired