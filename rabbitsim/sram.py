"""Static RAM bus slave."""

from __future__ import annotations

import logging
from typing import Optional

from .slave import BUS_WIDTH, DeviceError, SlaveDevice, decode_byte_enable

log = logging.getLogger(__name__)


class SramDevice(SlaveDevice):
    """Byte-addressable memory; each access takes one nanosecond."""

    ACCESS_PS = 1000

    def __init__(self, name: str, size: int) -> None:
        super().__init__(name)
        self.size = size
        self.mem = bytearray(size)

    def rcv_rqst(self, ofs: int, be: int, data: bytes, write: bool) -> Optional[bytes]:
        self.clock.advance(self.ACCESS_PS)
        if write:
            self._write(ofs, be, data)
            return None
        return self._read(ofs, be)

    def _span(self, ofs: int, be: int, out_of_range: bool) -> tuple[int, int, int]:
        if out_of_range:
            raise DeviceError(f"bad {self.name} access ofs=0x{ofs:X}, be=0x{be:X}")
        lane, width = decode_byte_enable(be)
        start = ofs + lane * width
        if start + width > self.size:
            raise DeviceError(f"bad {self.name} access ofs=0x{ofs:X}, be=0x{be:X}")
        return lane * width, start, width

    def _write(self, ofs: int, be: int, data: bytes) -> None:
        pos, start, width = self._span(ofs, be, ofs > self.size)
        lane = bytes(data[pos:pos + width])
        if len(lane) != width:
            raise DeviceError(f"{self.name}: write data shorter than the byte enable")
        self.mem[start:start + width] = lane

    def _read(self, ofs: int, be: int) -> bytes:
        pos, start, width = self._span(ofs, be, ofs >= self.size)
        out = bytearray(BUS_WIDTH)
        out[pos:pos + width] = self.mem[start:start + width]
        return bytes(out)