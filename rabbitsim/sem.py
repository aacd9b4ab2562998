"""Hardware semaphore bus slave."""

from __future__ import annotations

import logging
from typing import Optional

from .slave import BUS_WIDTH, DeviceError, SlaveDevice, decode_byte_enable

log = logging.getLogger(__name__)

_FREE = 0
_TAKEN = 1
_CONTENDED = 2


class SemaphoreError(RuntimeError):
    """A fatal semaphore access: a bad offset or byte enable, or a double lock."""


class SemDevice(SlaveDevice):
    """Memory whose word reads take the semaphore they read.

    Reading a free word (0) returns 0 and marks it taken (1). Writing 1 to a
    taken word marks it contended (2); reads report a contended word as 1.
    Writing 1 to a contended word is a double lock.
    """

    def __init__(self, name: str, size: int) -> None:
        super().__init__(name)
        self.size = size + 8
        self.mem = bytearray(self.size)

    def rcv_rqst(self, ofs: int, be: int, data: bytes, write: bool) -> Optional[bytes]:
        if write:
            self._write(ofs, be, data)
            return None
        return self._read(ofs, be)

    def _span(self, ofs: int, be: int) -> tuple[int, int, int]:
        bad = SemaphoreError(f"bad {self.name} access ofs=0x{ofs:X}, be=0x{be:X}")
        if ofs > self.size:
            raise bad
        try:
            lane, width = decode_byte_enable(be)
        except DeviceError:
            raise bad from None
        start = ofs + lane * width
        if width == 8 or start + width > self.size:
            raise bad
        return lane * width, start, width

    def _word(self, start: int) -> int:
        return int.from_bytes(self.mem[start:start + 4], "little")

    def _store_word(self, start: int, value: int) -> None:
        self.mem[start:start + 4] = (value & 0xFFFFFFFF).to_bytes(4, "little")

    def _write(self, ofs: int, be: int, data: bytes) -> None:
        pos, start, width = self._span(ofs, be)
        lane = bytes(data[pos:pos + width])
        if len(lane) != width:
            raise SemaphoreError(f"{self.name}: write data shorter than the byte enable")
        if width != 4:
            self.mem[start:start + width] = lane
            return

        value = int.from_bytes(lane, "little")
        log.debug("sem_write [%X] <- %d", start, value)
        if value == _TAKEN:
            old = self._word(start)
            if old == _TAKEN:
                value = _CONTENDED
            elif old == _CONTENDED:
                raise SemaphoreError(f"{self.name}: sem double locking!")
        self._store_word(start, value)

    def _read(self, ofs: int, be: int) -> bytes:
        pos, start, width = self._span(ofs, be)
        out = bytearray(BUS_WIDTH)
        if width != 4:
            out[pos:pos + width] = self.mem[start:start + width]
            return bytes(out)

        value = self._word(start)
        log.debug("sem_read [%X] -> %d", start, value)
        reported = _TAKEN if value == _CONTENDED else value
        out[pos:pos + 4] = reported.to_bytes(4, "little")
        if value == _FREE:
            self._store_word(start, _TAKEN)
        return bytes(out)